"""
Declarative configuration sections for connection options and library-wide settings.

The :class:`ConfigSection` class is intended to be used as a base class for configuration classes, and the
:class:`ConfigItem` descriptor is intended to be used to define each configurable option in subclasses of ConfigSection.

:author: Doug Skrypa
"""

from __future__ import annotations

from collections import ChainMap
from typing import Union, Callable, Iterable, Any, Mapping, Type

__all__ = [
    'ConfigItem', 'ConfigSection', 'ConnectionOptions', 'Settings', 'settings', 'ConfigException',
    'InvalidConfigError', 'ConfigTypeError',
]

ConfigMap = Union[Mapping[str, Any], 'ConfigSection', None]

_NotSet = object()


class ConfigItem:
    __slots__ = ('name', 'type', 'default')

    def __init__(self, default: Any = None, type: Callable[[Any], Any] = None):  # noqa
        self.type = type
        self.default = default

    def __set_name__(self, owner: Type[ConfigSection], name: str):
        self.name = name
        owner._config_items_[name] = self

    def __get__(self, instance, owner):
        try:
            return instance.__dict__[self.name]
        except AttributeError:  # instance is None
            return self
        except KeyError:
            return self.default

    def __set__(self, instance: ConfigSection, value: Any):
        if self.type is not None and value is not None:
            try:
                value = self.type(value)
            except (TypeError, ValueError) as e:
                raise ConfigTypeError(f'Invalid value={value!r} for {self.name!r}: {e}') from e
        instance.__dict__[self.name] = value

    def __delete__(self, instance: ConfigSection):
        try:
            del instance.__dict__[self.name]
        except KeyError as e:
            raise AttributeError(f'No {self.name!r} config was stored for {instance}') from e

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}({self.default!r}, type={self.type!r})>'


class ConfigMeta(type):
    """
    Metaclass for ConfigSections.  Necessary to initialize the ``_config_items_`` dict for ConfigItem registration
    because the contents of a class is evaluated before ``__init_subclass__`` is called.
    """
    _config_items_: dict[str, ConfigItem]

    @classmethod
    def __prepare__(mcs, name: str, bases: Iterable[type], **kwargs) -> dict[str, Any]:
        config_items = {}
        for base in bases:
            if isinstance(base, mcs):
                config_items.update(base._config_items_)
        return {'_config_items_': config_items}


class ConfigSection(metaclass=ConfigMeta):
    _config_items_: dict[str, ConfigItem]

    def __init__(self, config: ConfigMap = None, **kwargs):
        self.update(config, **kwargs)

    def update(self, config: ConfigMap = None, **kwargs):
        """
        Update this section with the given content.  If any of the provided keys are not expected, then an
        :class:`InvalidConfigError` will be raised before any values are stored.

        :param config: A dict or other mapping containing values that should be used in this section
        :param kwargs: Additional keyword arguments for values that should be used in this section
        """
        if isinstance(config, ConfigSection):
            config = config.__dict__
        if config and kwargs:
            config_map = ChainMap(kwargs, config)
        else:
            config_map = config or kwargs
        if not config_map:
            return
        if bad := set(config_map).difference(self._config_items_):
            raise InvalidConfigError(f'Invalid configuration - unsupported options: {", ".join(sorted(bad))}')
        for key, val in config_map.items():
            setattr(self, key, val)

    def __contains__(self, key: str) -> bool:
        """True if a non-default value was stored for the given key"""
        return key in self.__dict__

    def __getitem__(self, key: str):
        if key not in self._config_items_:
            raise KeyError(key)
        return getattr(self, key)

    def as_dict(self, include_defaults: bool = True) -> dict[str, Any]:
        keys = self._config_items_ if include_defaults else self.__dict__
        return {key: getattr(self, key) for key in keys}

    def __repr__(self) -> str:
        settings = ', '.join(f'{k}={v!r}' for k, v in sorted(self.__dict__.items()))
        return f'<{self.__class__.__name__}({settings})>'


class ConnectionOptions(ConfigSection):
    """Options that control how a :class:`~couchrest.connection.Connection` configures its HTTP session."""
    timeout = ConfigItem(None, type=float)
    read_timeout = ConfigItem(None, type=float)
    open_timeout = ConfigItem(None, type=float)
    verify_ssl = ConfigItem(None, type=bool)
    ssl_client_cert = ConfigItem(None, type=str)
    ssl_client_key = ConfigItem(None, type=str)
    ssl_ca_file = ConfigItem(None, type=str)
    proxy = ConfigItem(None, type=str)

    @property
    def effective_read_timeout(self):
        if 'read_timeout' in self:
            return self.read_timeout
        return self.timeout


class Settings(ConfigSection):
    """Library-wide settings"""
    decode_json_objects = ConfigItem(False, type=bool)
    uuid_batch_count = ConfigItem(1000, type=int)


settings = Settings()


class ConfigException(Exception):
    """Base exception for config-related errors"""


class InvalidConfigError(ConfigException):
    """Raised when invalid config items are provided when initializing a ConfigSection"""


class ConfigTypeError(ConfigException, TypeError):
    """Raised when a config value cannot be converted to the type expected by its ConfigItem"""
