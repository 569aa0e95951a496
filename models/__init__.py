"""
Persistence package. `storage` is the process-wide DBStorage; the app factory
configures it from DATABASE_URL.
"""
from models.db_storage import DBStorage

storage = DBStorage()
