# errors.py


class LayoutError(Exception):
    """Base class for every error raised by graphlayout."""


class LayoutConfigError(LayoutError, ValueError):
    """Unknown option, option of the wrong type/range, or unknown layout type."""


class LayoutDataError(LayoutError, ValueError):
    """Graph payload that cannot be bound (duplicate ids, dangling edges)."""


class LayoutStateError(LayoutError, RuntimeError):
    """Call made on a layout that has already been destroyed."""
