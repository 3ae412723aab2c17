from .room_service import RoomService
from .video_provider import JoinCredential, LiveKitProvider, VideoProvider, get_video_provider

__all__ = ['JoinCredential', 'LiveKitProvider', 'RoomService', 'VideoProvider', 'get_video_provider']
