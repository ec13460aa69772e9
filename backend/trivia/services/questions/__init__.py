from .generator import create_question, BankQuestionSource

__all__ = ['create_question', 'BankQuestionSource']
