"""
Service layer for CrashMap.
"""

from .crash_service import CrashQueryResponse, CrashService

__all__ = ["CrashQueryResponse", "CrashService"]
