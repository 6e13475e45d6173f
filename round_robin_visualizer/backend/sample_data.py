from __future__ import annotations

from typing import List, Tuple
import random
import sqlite3

from .catalog import KINDS


SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    catalog_id INTEGER NOT NULL,
    nombre_catalogo TEXT NOT NULL,
    pid INTEGER NOT NULL,
    nombre TEXT NOT NULL,
    usuario TEXT NOT NULL,
    prioridad INTEGER NOT NULL
)
"""

PROCESS_NAMES = {
    "cpu": ["bash", "python3", "gcc", "ffmpeg", "sshd", "systemd", "make", "node", "java", "top", "rustc", "ld"],
    "memoria": ["chrome", "redis", "postgres", "firefox", "slack", "docker", "mysqld", "code", "gimp", "vlc"],
}
USERS = ["root", "ana", "luis", "maria", "daemon", "www-data"]


def generate_catalog_rows(kind: str, catalogs: int, per_catalog: int, seed: int) -> List[Tuple]:
    rng = random.Random(f"{kind}-{seed}")
    rows: List[Tuple] = []
    pid = 100
    for catalog_id in range(1, catalogs + 1):
        label = f"{kind.upper()} catálogo {catalog_id}"
        for _ in range(per_catalog):
            pid += rng.randint(1, 40)
            rows.append((
                catalog_id,
                label,
                pid,
                rng.choice(PROCESS_NAMES[kind]),
                rng.choice(USERS),
                rng.randint(0, 1),
            ))
    return rows


def write_sample_database(path: str, catalogs: int = 3, per_catalog: int = 6, seed: int = 42) -> str:
    """Create a database in the layout read by CatalogDatabase."""
    conn = sqlite3.connect(path)
    try:
        with conn:
            for kind in KINDS:
                conn.execute(f"DROP TABLE IF EXISTS {kind}")
                conn.execute(SCHEMA.format(table=kind))
                conn.executemany(
                    f"INSERT INTO {kind} (catalog_id, nombre_catalogo, pid, nombre, usuario, prioridad) VALUES (?, ?, ?, ?, ?, ?)",
                    generate_catalog_rows(kind, catalogs, per_catalog, seed),
                )
    finally:
        conn.close()
    return path
