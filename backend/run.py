from trivia import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server so remote room clients can connect to /ws
    socketio.run(app, debug=True)
