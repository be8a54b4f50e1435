"""Database clients and utilities."""

from .session import build_engine, build_session_factory, get_engine, get_session_factory, init_db

__all__ = ["build_engine", "build_session_factory", "get_engine", "get_session_factory", "init_db"]
