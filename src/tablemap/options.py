from dataclasses import dataclass

from tablemap.strategy import get_available_dialects, get_strategy_class
from tablemap.strategy import is_supported_dialect

from libb import ConfigOptions

__all__ = [
    'MapperOptions',
    'DatabaseOptions',
]


@dataclass
class MapperOptions:
    """Options controlling how record types are mapped.

    - use_annotations: honor Rename, Ignore and Index directives (default: False)
    - id_column: column name of the identity field (default: `_id`)
    """
    use_annotations: bool = False
    id_column: str = '_id'

    def __post_init__(self):
        if not self.id_column:
            raise ValueError('id_column must be a non-empty column name')


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `sqlite`

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)
    """
    drivername: str = 'sqlite'
    database: str = ':memory:'
    timeout: int = 0
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
