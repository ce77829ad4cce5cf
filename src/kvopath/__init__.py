"""kvopath: property paths and key-value observing for Python objects."""

from importlib.metadata import version as _version

__version__ = _version("kvopath")

from kvopath._anchor import MetaRecord, meta
from kvopath._scheduling import flush_pending, get_pending_count, set_scheduler
from kvopath.accessors import MISSING, FieldKind, classify, get, get_path, set, set_path
from kvopath.descriptors import ComputedField, Property, property
from kvopath.errors import CyclicDependencyError, MalformedPathError, NotCallableError
from kvopath.observable import (
    Edge,
    Observable,
    dependency_edges,
    destroy,
    init_observable,
    observes,
    observes_before,
    teardown_observable,
)
from kvopath.path import tokenize
from kvopath.subscribable import Subscribable, Subscription

__all__ = [
    "tokenize",
    "MalformedPathError",
    "NotCallableError",
    "CyclicDependencyError",
    "get",
    "set",
    "get_path",
    "set_path",
    "classify",
    "FieldKind",
    "MISSING",
    "property",
    "Property",
    "ComputedField",
    "meta",
    "MetaRecord",
    "Subscribable",
    "Subscription",
    "set_scheduler",
    "flush_pending",
    "get_pending_count",
    "Observable",
    "observes",
    "observes_before",
    "init_observable",
    "teardown_observable",
    "destroy",
    "dependency_edges",
    "Edge",
]
