from .quiz_service import QuizService

__all__ = ['QuizService']
