#  -*- coding: utf-8 -*-
"""
Configtree: typed configuration objects mapped to commented, evolvable trees.

Configtree maps configuration types (``Configuration`` subclasses and
dataclasses, nested and inherited) to a format-agnostic tree, persists the
tree as commented YAML or HDF5, and reconciles persisted files with the
current shape of the types, so configuration files survive schema changes.

Key Features
------------
- **Static shape discovery**: types are validated once, cycles and
  unsupported annotations are rejected before any instance is touched
- **Type-driven serializers**: scalars, enums, temporal and utility types,
  collections, maps and nested aggregates, with user overrides
- **Non-destructive update**: persisted values survive, new components get
  their defaults, obsolete keys are dropped
- **Comments**: attached to components and emitted in front of their keys

Modules
-------
configuration
    ``Configuration``, ``ConfigProperty`` and ``component`` declarations
descriptor
    ``describe`` and the validated ``TypeDescriptor``
serializers
    ``Serializer`` and ``SerializerResolver``
converter, merge
    ``encode``, ``decode`` and the lenient ``merge`` used by ``update``
store
    ``save``, ``load``, ``update`` and ``ConfigurationStore``
codec, targets
    YAML codec and the memory, YAML and HDF5 targets

Examples
--------
>>> from configtree import Configuration, ConfigProperty, update
>>>
>>> class Server(Configuration):
...     host: str = ConfigProperty(default='localhost', comment='Host name')
...     port: int = 8080
>>>
>>> server = update('server.yml', Server)
>>> server.port
8080
"""


from .errors import *
from .nodes import *
from .typeinfo import register_serializable_type, remove_serializable_type, is_serializable_type
from .configuration import *
from .descriptor import *
from .display import *
from .properties import *
from .serializers import *
from .converter import encode, decode
from .merge import merge
from .codec import YamlCodec
from .targets import *
from .store import *


__all__ = [
    "ConfigurationError",
    "TypeDiscoveryError",
    "SerializerResolutionError",
    "ShapeMismatchError",
    "NullPolicyViolation",
    "Node",
    "Scalar",
    "Sequence",
    "Set",
    "Mapping",
    "Null",
    "NULL",
    "Configuration",
    "ConfigProperty",
    "config_property",
    "component",
    "register_serializable_type",
    "remove_serializable_type",
    "is_serializable_type",
    "Component",
    "TypeDescriptor",
    "describe",
    "Properties",
    "NameFormatters",
    "SetEncoding",
    "Serializer",
    "SerializerResolver",
    "encode",
    "decode",
    "merge",
    "YamlCodec",
    "MemoryTarget",
    "YamlFile",
    "Hdf5File",
    "save",
    "load",
    "update",
    "ConfigurationStore",
    "DisplaySettings",
    "Displayable",
    "render_tree",
]


try:
    # this will run if configtree is installed
    from importlib.metadata import metadata, PackageNotFoundError

    meta = metadata('configtree')

    __version__ = meta['Version']

except PackageNotFoundError:
    # this will run during development
    import toml
    from pathlib import Path

    pyproject_filepath = Path(__file__).parent.parent / "pyproject.toml"

    with pyproject_filepath.open() as file:
        pyproject = toml.load(file)

    __version__ = pyproject["project"]["version"]
