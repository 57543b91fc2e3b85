from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Mapping

import mysql.connector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_mapping(cls, db_config: Mapping[str, Any]) -> "DBConfig":
        return cls(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
        )


class DatabaseConnection:
    """Opens one MySQL connection per repository call.

    Repositories share one factory per database config; `db_cursor` owns
    commit, rollback and close.
    """

    _factories: dict[DBConfig, "DatabaseConnection"] = {}

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        factory = cls._factories.get(config)
        if factory is None:
            logger.debug("new connection factory for %s@%s/%s", config.user, config.host, config.database)
            factory = cls._factories[config] = cls(config)
        return factory

    @property
    def database(self) -> str:
        return self._config.database

    def connect(self):
        return mysql.connector.connect(**asdict(self._config), charset="utf8mb4", autocommit=False)
