from dataclasses import dataclass, field
from environs import Env


@dataclass
class DBConfig:
    """ PostgreSQL """
    host: str | None = None
    port: int | None = None
    name: str | None = None
    user: str | None = None
    password: str | None = None

    """ SQLite """
    path: str | None = None

    echo: bool = False

    @property
    def url(self) -> str:
        if self.host:
            return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"
        return f"sqlite+aiosqlite:///{self.path}"


@dataclass
class LogConfig:
    level: str = "INFO"


@dataclass
class Config:
    """ Config """
    db: DBConfig
    log: LogConfig = field(default_factory=LogConfig)


def load_config(path: str | None) -> Config:
    env = Env()
    env.read_env(path)

    return Config(
        db=DBConfig(
            host=env('DB_HOST', None),
            port=env.int('DB_PORT', None),
            name=env('DB_NAME', None),
            user=env('DB_USER', None),
            password=env('DB_PASSWORD', None),
            path=env('DB_PATH', 'data/messenger.db'),
            echo=env.bool('DB_ECHO', False)
        ),
        log=LogConfig(
            level=env('LOG_LEVEL', 'INFO')
        )
    )
