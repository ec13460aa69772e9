from flask import Blueprint, jsonify, request
from trivia.services.questions import create_question

questions = Blueprint('questions', __name__)


@questions.route('/random', methods=['GET'])
def random_question():
    try:
        question_type = int(request.args.get('type', ''))
    except ValueError:
        return jsonify({'error': 'type must be 1, 2, 3 or 4'}), 400
    if question_type not in (1, 2, 3, 4):
        return jsonify({'error': 'type must be 1, 2, 3 or 4'}), 400

    question = create_question(question_type)
    if question is None:
        return jsonify({'error': 'Could not build a question of that type'}), 404
    return jsonify(question)
