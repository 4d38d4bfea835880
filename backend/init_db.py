"""Initialize database (create tables). Run: python backend/init_db.py"""
import os

from church.database import create_tables, make_engine


def init(database_url=None):
    database_url = database_url or os.getenv('DATABASE_URL', 'sqlite:///./church.db')
    create_tables(make_engine(database_url))


if __name__ == '__main__':
    print('Initializing DB...')
    init()
    print('DB initialized.')
