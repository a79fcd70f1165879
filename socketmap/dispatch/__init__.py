"""Request dispatching for the socketmap server."""

from .dispatcher import LookupTable, RequestDispatcher, default_tables

__all__ = ["LookupTable", "RequestDispatcher", "default_tables"]
