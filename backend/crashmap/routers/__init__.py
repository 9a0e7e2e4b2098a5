"""
HTTP routers for CrashMap.
"""
