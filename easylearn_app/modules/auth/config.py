class AuthModuleDefaultConfig:
    """Default settings for registration and invitation codes."""

    # Random part of an invitation code, e.g. STUDENT_3F9A0C1B2D4E
    TOKEN_RANDOM_LENGTH = 12
    MIN_PASSWORD_LENGTH = 6
