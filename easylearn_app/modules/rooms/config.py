class RoomsModuleDefaultConfig:
    """Defaults for room listings."""

    DEFAULT_SORT_BY = 'scheduledAt'
    DEFAULT_SORT_ORDER = 'desc'
    # Public sort keys mapped to Room columns
    SORT_FIELDS = {
        'scheduledAt': 'scheduled_at',
        'createdAt': 'created_at',
        'name': 'name',
        'status': 'status',
        'language': 'language',
    }
