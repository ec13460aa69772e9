"""Game session state machine.

Rooms move ``waiting -> in-game -> finished`` and back to ``waiting`` on
reset. Inside a game each question is *open* until every current player has
answered, its deadline passes, or (rush mode) someone answers correctly.
Only the creator's client turns a closed question into the next transition,
and every client re-derives that decision from the stored document each
time it changes, so a failed write is retried on the next notification.
"""
import logging
import threading
from typing import Callable, Optional, Set, Tuple

from ..store import SERVER_TIMESTAMP, RoomStore
from .answers import has_correct_answer, submit_answer
from .clock import ClockSync, seconds_remaining
from .errors import InvalidPhase
from .lifecycle import create_room, join_room, leave_room
from .lobby import reset_to_lobby, set_ready, start_game, update_setting
from .room import (
    DEFAULT_TIME_LIMITS,
    MODE_RUSH,
    STATUS_FINISHED,
    STATUS_IN_GAME,
    STATUS_WAITING,
    Question,
    Room,
    room_path,
)
from .scoring import score_current_question

logger = logging.getLogger(__name__)


def all_players_answered(room: Room, index: int) -> bool:
    answers = room.answers_for(index)
    return bool(room.players) and all(pid in answers for pid in room.players)


def is_question_closed(room: Room, time_limit: int, now_ms: int) -> bool:
    if room.status != STATUS_IN_GAME or room.current_question is None:
        return False
    index = room.current_question_index
    if all_players_answered(room, index):
        return True
    if room.game_mode == MODE_RUSH and has_correct_answer(room, index):
        return True
    return seconds_remaining(room.current_question_start_time, time_limit, now_ms) <= 0


def preload_hint(question: Optional[Question]) -> Optional[str]:
    if question is None or question.media is None:
        return None
    return question.media.image or question.media.voice_record or None


def build_advance_update(room: Room, time_limit: int) -> dict:
    """Scores for the closing question plus the next phase, as one update."""
    update = {}
    for pid, delta in score_current_question(room, time_limit).items():
        # Players who left since answering are not written back
        if pid in room.players:
            update[f'players/{pid}/score'] = room.players[pid].score + delta

    index = room.current_question_index
    if room.game_mode == MODE_RUSH:
        update[f'lockedPlayers/{index}'] = None

    if room.is_last_question:
        update['status'] = STATUS_FINISHED
        update['preloadMediaUrl'] = None
    else:
        update['currentQuestionIndex'] = index + 1
        update['currentQuestionStartTime'] = SERVER_TIMESTAMP
        update['preloadMediaUrl'] = preload_hint(room.questions[index + 1])
    return update


def _start_daemon(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


class GameClient:
    """A single participant's connection to one room.

    Every participant runs one. All of them render the same document; the
    one whose identity matches ``creatorId`` also writes the question
    advances and scores. Each client reports its own final score once per
    finished game.
    """

    def __init__(
        self,
        store: RoomStore,
        room_code: str,
        identity: str,
        score_recorder=None,
        clock: Optional[ClockSync] = None,
        time_limits: Optional[dict] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        connection_id: Optional[str] = None,
    ):
        self.store = store
        self.room_code = room_code
        self.identity = identity
        self.score_recorder = score_recorder
        self.clock = clock or ClockSync(store)
        self.time_limits = time_limits or DEFAULT_TIME_LIMITS
        self.on_error = on_error
        self.connection_id = connection_id
        self.room: Optional[Room] = None
        self.closed = False
        self.last_error: Optional[Exception] = None
        self._lock = threading.RLock()
        self._processed: Set[Tuple[int, Optional[int]]] = set()
        self._reported = False
        self._member = False
        self._unsubscribe = None
        self._ticker_stop: Optional[threading.Event] = None

    @classmethod
    def host(cls, store: RoomStore, identity: str, display_name: str, **kwargs) -> 'GameClient':
        """Create a room and return the creator's (not yet started) client."""
        connection_id = kwargs.pop('connection_id', None) or store.connect()
        code = create_room(store, identity, display_name, connection_id=connection_id)
        return cls(store, code, identity, connection_id=connection_id, **kwargs)

    # ---- subscription ----

    def start(self, tick_interval: Optional[float] = None) -> 'GameClient':
        self.clock.sample()
        self._unsubscribe = self.store.subscribe(room_path(self.room_code), self._on_change)
        if tick_interval:
            self.start_ticker(tick_interval)
        return self

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._ticker_stop is not None:
            self._ticker_stop.set()
            self._ticker_stop = None

    def start_ticker(self, interval: float = 1.0, start_background_task=None, sleep=None) -> None:
        """Re-evaluate the countdown every ``interval`` seconds.

        A store backed by a Socket.IO client runs the loop as one of that
        client's background tasks. The in-process store gets a daemon thread.
        """
        if self._ticker_stop is not None:
            return
        stop = threading.Event()
        self._ticker_stop = stop
        start = start_background_task or getattr(self.store, 'start_background_task', None) or _start_daemon
        pause = sleep or getattr(self.store, 'sleep', None) or stop.wait

        def _run():
            while True:
                pause(interval)
                if stop.is_set():
                    break
                try:
                    self.tick()
                except Exception:
                    logger.exception(f"[tick] room={self.room_code} player={self.identity} failed")

        start(_run)

    def _on_change(self, doc) -> None:
        with self._lock:
            if not doc:
                if not self.closed:
                    logger.info(f"[room-gone] room={self.room_code} player={self.identity}")
                self.room = None
                self.closed = True
                return
            room = self.room = Room.from_document(self.room_code, doc)
            if self.identity in room.players:
                self._member = True
                self.closed = False
            elif not self._member:
                self.closed = False
            elif room.status != STATUS_FINISHED and not self.closed:
                # Our own entry is gone while the game is still on
                self.closed = True
                logger.info(f"[removed] room={self.room_code} player={self.identity}")
            if self.closed:
                return

        if room.status == STATUS_WAITING:
            with self._lock:
                self._reported = False
        elif room.status == STATUS_FINISHED:
            self._report_result(room)
        elif room.status == STATUS_IN_GAME:
            self.evaluate(room)

    # ---- state machine ----

    @property
    def is_creator(self) -> bool:
        return self.room is not None and self.room.is_creator(self.identity)

    def seconds_left(self) -> int:
        room = self.room
        if room is None:
            return DEFAULT_TIME_LIMITS['easy']
        limit = room.time_limit(self.time_limits)
        if room.status != STATUS_IN_GAME:
            return limit
        return self.clock.seconds_remaining(room.current_question_start_time, limit)

    def tick(self, now_ms: Optional[int] = None) -> bool:
        return self.evaluate(now_ms=now_ms)

    def evaluate(self, room: Optional[Room] = None, now_ms: Optional[int] = None) -> bool:
        """Advance the current question if it is closed and we are the creator."""
        room = room or self.room
        if room is None or room.status != STATUS_IN_GAME or not room.is_creator(self.identity):
            return False
        time_limit = room.time_limit(self.time_limits)
        now = self.clock.server_now() if now_ms is None else now_ms
        if not is_question_closed(room, time_limit, now):
            return False

        marker = (room.current_question_index, room.current_question_start_time)
        with self._lock:
            if marker in self._processed:
                return False
            self._processed.add(marker)
        return self._advance(room, time_limit, marker)

    def _advance(self, room: Room, time_limit: int, marker) -> bool:
        update = build_advance_update(room, time_limit)
        try:
            self.store.update(room_path(self.room_code), update)
        except Exception as exc:
            # Forget the marker so the next notification or tick retries
            with self._lock:
                self._processed.discard(marker)
            logger.warning(f"[advance-failed] room={self.room_code} index={room.current_question_index}: {exc}")
            self._surface(exc)
            return False
        logger.info(
            f"[advance] room={self.room_code} index={room.current_question_index} "
            f"finished={update.get('status') == STATUS_FINISHED}"
        )
        return True

    def _report_result(self, room: Room) -> None:
        with self._lock:
            if self._reported:
                return
            player = room.players.get(self.identity)
            if player is None:
                return
            self._reported = True
        if self.score_recorder is None:
            return
        mode = f"multiplayer-{room.game_mode}"
        try:
            self.score_recorder.record_game_result(player.score, mode)
            logger.info(f"[result] room={self.room_code} player={self.identity} score={player.score} mode={mode}")
        except Exception as exc:
            logger.warning(f"[result-failed] room={self.room_code} player={self.identity}: {exc}")
            self._surface(exc)

    def _surface(self, exc: Exception) -> None:
        self.last_error = exc
        if self.on_error is not None:
            self.on_error(exc)

    # ---- player actions ----

    def _ensure_connection(self) -> str:
        if self.connection_id is None:
            self.connection_id = self.store.connect()
        return self.connection_id

    def join(self, display_name: str) -> bool:
        return join_room(self.store, self.room_code, self.identity, display_name,
                         connection_id=self._ensure_connection())

    def leave(self) -> None:
        leave_room(self.store, self.room_code, self.identity, connection_id=self.connection_id)
        self.stop()

    def drop_connection(self) -> None:
        """Simulate the connection dying: fire presence hooks, stop listening."""
        self.stop()
        if self.connection_id is not None:
            self.store.disconnect(self.connection_id)
            self.connection_id = None

    def set_ready(self, ready: bool = True) -> None:
        set_ready(self.store, self.room_code, self.identity, ready)

    def update_setting(self, key: str, value) -> None:
        update_setting(self.store, self.room_code, self.identity, key, value)

    def start_game(self, source, media_base_url: str = ''):
        return start_game(self.store, self.room_code, self.identity, source, media_base_url)

    def reset_to_lobby(self) -> None:
        reset_to_lobby(self.store, self.room_code, self.identity)

    def submit_answer(self, option: str, question_index: Optional[int] = None) -> None:
        if question_index is None:
            question_index = self.room.current_question_index if self.room else None
        if question_index is None:
            raise InvalidPhase('there is no current question')
        submit_answer(self.store, self.room_code, self.identity, question_index, option,
                      clock=self.clock, time_limits=self.time_limits)
