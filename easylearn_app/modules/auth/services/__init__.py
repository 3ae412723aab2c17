from .access_token_service import AccessTokenService
from .identity_service import IdentityService
from .registration_service import RegistrationService

__all__ = ['AccessTokenService', 'IdentityService', 'RegistrationService']
