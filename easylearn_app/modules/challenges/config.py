class ChallengesModuleDefaultConfig:
    MIN_BASE_POINTS = 10
    MAX_BASE_POINTS = 200
    # Lifetime of a challenge, in hours
    MIN_EXPIRES_IN = 1
    MAX_EXPIRES_IN = 168
    LEADERBOARD_LIMIT = 50
