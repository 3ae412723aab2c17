class QuizzesModuleDefaultConfig:
    DEFAULT_PASSING_SCORE = 60
    DEFAULT_QUESTION_POINTS = 1
    MIN_OPTIONS = 2
    DEFAULT_SORT_BY = 'createdAt'
    DEFAULT_SORT_ORDER = 'desc'
    SORT_FIELDS = {
        'createdAt': 'created_at',
        'title': 'title',
        'language': 'language',
        'passingScore': 'passing_score',
    }
