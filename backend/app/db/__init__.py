"""
Database layer - MongoDB client lifecycle and index management.
"""

from .mongodb import connect_to_database, close_database, get_db, get_connection_manager

__all__ = ['connect_to_database', 'close_database', 'get_db', 'get_connection_manager']
