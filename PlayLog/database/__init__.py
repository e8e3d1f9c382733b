# Database schema and utilities for PlayLog

from pathlib import Path

import duckdb

DB_PATH = Path(__file__).parent.parent / 'storage' / 'playlog.db'

SCHEMA_QUERIES = [
    '''
    CREATE TABLE IF NOT EXISTS playtime_probes (
        probe_id VARCHAR PRIMARY KEY,
        game_id VARCHAR NOT NULL,
        game_name VARCHAR,
        check_time TIMESTAMP NOT NULL,
        delta_minutes INTEGER NOT NULL,
        cumulative_minutes INTEGER
    );
    ''',
    'CREATE INDEX IF NOT EXISTS idx_playtime_probes_check_time ON playtime_probes(check_time);',
    '''
    CREATE TABLE IF NOT EXISTS playtime_latest (
        game_id VARCHAR PRIMARY KEY,
        game_name VARCHAR,
        cumulative_minutes INTEGER NOT NULL,
        last_check_time TIMESTAMP NOT NULL
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS play_sessions (
        record_id VARCHAR PRIMARY KEY,
        window_id VARCHAR NOT NULL,
        game_id VARCHAR NOT NULL,
        game_name VARCHAR,
        local_date DATE NOT NULL,
        start_utc TIMESTAMP NOT NULL,
        end_utc TIMESTAMP NOT NULL,
        start_local VARCHAR NOT NULL,
        end_local VARCHAR NOT NULL,
        utc_date DATE,
        duration_minutes INTEGER NOT NULL,
        block_count INTEGER NOT NULL,
        probe_count INTEGER,
        played_blocks INTEGER
    );
    ''',
    'ALTER TABLE play_sessions ADD COLUMN IF NOT EXISTS played_blocks INTEGER;',
    'CREATE INDEX IF NOT EXISTS idx_play_sessions_local_date ON play_sessions(local_date);',
    'CREATE INDEX IF NOT EXISTS idx_play_sessions_window_id ON play_sessions(window_id);',
    '''
    CREATE TABLE IF NOT EXISTS metadata (
        key VARCHAR PRIMARY KEY,
        value VARCHAR
    );
    '''
]


def get_connection(db_path: Path | str | None = None):
    path = db_path or DB_PATH
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path))


def create_schema(conn) -> None:
    for query in SCHEMA_QUERIES:
        conn.execute(query)


def init_database(db_path: Path | str | None = None):
    with get_connection(db_path) as conn:
        create_schema(conn)
