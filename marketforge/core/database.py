import os
import sqlite3


class Database:

    @staticmethod
    def connect(path):
        db_dir = os.path.dirname(path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return sqlite3.connect(path)

    @staticmethod
    def dict_factory(cursor, row):
        """sqlite3 row factory that returns dicts."""
        return {col[0]: row[i] for i, col in enumerate(cursor.description)}
