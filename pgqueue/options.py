"""
Call options for queue operations.

Options are small immutable values folded, in order, into a single options
object before validation:

    await client.list(with_namespace("emails"), with_limit(10))
    await client.shift(with_namespace("emails"))

``with_namespace`` is accepted by both list and scope calls; ``with_limit``
and ``with_offset`` only by ``list``.
"""

from dataclasses import dataclass

from pgqueue.constants import DEFAULT_LIST_LIMIT, DEFAULT_NAMESPACE
from pgqueue.types.task import validate_namespace


class ListOption:
    """Option accepted when listing tasks."""

    def apply_list_option(self, options: "ListOptions") -> None:
        raise NotImplementedError


class ScopeOption:
    """Option accepted when scoping an operation to a namespace."""

    def apply_scope_option(self, options: "ScopeOptions") -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class WithNamespace(ListOption, ScopeOption):
    namespace: str

    def apply_list_option(self, options: "ListOptions") -> None:
        options.namespace = self.namespace

    def apply_scope_option(self, options: "ScopeOptions") -> None:
        options.namespace = self.namespace


@dataclass(frozen=True)
class WithLimit(ListOption):
    limit: int

    def apply_list_option(self, options: "ListOptions") -> None:
        options.limit = self.limit


@dataclass(frozen=True)
class WithOffset(ListOption):
    offset: int

    def apply_list_option(self, options: "ListOptions") -> None:
        options.offset = self.offset


def with_namespace(namespace: str) -> WithNamespace:
    """Restrict an operation to a namespace. Namespaces must be ASCII."""
    return WithNamespace(namespace)


def with_limit(limit: int) -> WithLimit:
    """Limit the number of listed tasks. Default: 100."""
    return WithLimit(limit)


def with_offset(offset: int) -> WithOffset:
    """Skip a number of listed tasks."""
    return WithOffset(offset)


@dataclass
class ListOptions:
    namespace: str = DEFAULT_NAMESPACE
    limit: int = DEFAULT_LIST_LIMIT
    offset: int = 0

    @classmethod
    def build(
        cls,
        *opts: ListOption,
        namespace: str = DEFAULT_NAMESPACE,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> "ListOptions":
        """Fold options over the defaults and validate the result."""
        options = cls(namespace=namespace, limit=limit)
        for opt in opts:
            if not isinstance(opt, ListOption):
                raise TypeError(f"{opt!r} cannot be applied when listing tasks")
            opt.apply_list_option(options)
        options.validate()
        return options

    def validate(self) -> None:
        validate_namespace(self.namespace)
        if self.limit < 0:
            raise ValueError(f"limit must not be negative, got {self.limit}")
        if self.offset < 0:
            raise ValueError(f"offset must not be negative, got {self.offset}")
        if self.limit == 0:
            self.limit = DEFAULT_LIST_LIMIT


@dataclass
class ScopeOptions:
    namespace: str = DEFAULT_NAMESPACE

    @classmethod
    def build(cls, *opts: ScopeOption, namespace: str = DEFAULT_NAMESPACE) -> "ScopeOptions":
        """Fold options over the defaults and validate the result."""
        options = cls(namespace=namespace)
        for opt in opts:
            if not isinstance(opt, ScopeOption):
                raise TypeError(f"{opt!r} cannot be applied to a scoped operation")
            opt.apply_scope_option(options)
        options.validate()
        return options

    def validate(self) -> None:
        validate_namespace(self.namespace)
