from namemapper.schemas.resolution import ResolutionError, ResolutionRead

__all__ = [
    "ResolutionError",
    "ResolutionRead",
]
