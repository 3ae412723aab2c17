class ProfilesModuleDefaultConfig:
    """Defaults for profile listings."""

    DEFAULT_SORT_BY = 'createdAt'
    DEFAULT_SORT_ORDER = 'desc'
    STUDENT_SORT_FIELDS = {
        'createdAt': 'created_at',
        'joinedAt': 'joined_at',
        'nickname': 'nickname',
        'level': 'level',
        'totalSessions': 'total_sessions',
    }
    PROFESSOR_SORT_FIELDS = {
        'createdAt': 'created_at',
        'joinedAt': 'joined_at',
        'specialization': 'specialization',
    }
