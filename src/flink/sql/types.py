from typing import Any, Dict, Iterable, List, Sequence, Tuple


class Row(tuple):
    """
    One decoded row of a result set.

    Values are reachable by position, by column name and as attributes:

    >>> row = Row.create(["id", "name"], [1, "Alice"])
    >>> row
    Row(id=1, name='Alice')
    >>> row[0], row["name"], row.name
    (1, 'Alice', 'Alice')

    Rows of a streaming result also carry the changelog `kind` of the change
    they describe; it is "INSERT" for every row of a bounded query.
    """

    __slots__ = ()

    _fields: Tuple[str, ...] = ()
    _kind: str = "INSERT"

    @classmethod
    def create(
        cls, fields: Sequence[str], values: Iterable[Any], kind: str = "INSERT"
    ) -> "Row":
        values = tuple(values)
        if len(values) != len(fields):
            raise ValueError(
                "Expected {} values for fields {}, got {}".format(
                    len(fields), list(fields), len(values)
                )
            )
        row_type = _row_type(tuple(fields), kind)
        return tuple.__new__(row_type, values)

    @property
    def fields(self) -> List[str]:
        return list(self._fields)

    @property
    def kind(self) -> str:
        return self._kind

    def asDict(self, recursive: bool = False) -> Dict[str, Any]:
        """Return the row as a dict keyed by column name."""
        if not recursive:
            return dict(zip(self._fields, self))
        return {name: _to_plain(value) for name, value in zip(self._fields, self)}

    def __getitem__(self, item: Any) -> Any:
        if isinstance(item, (int, slice)):
            return tuple.__getitem__(self, item)
        try:
            return tuple.__getitem__(self, self._fields.index(item))
        except ValueError:
            raise KeyError(item)

    def __getattr__(self, item: str) -> Any:
        if item.startswith("__"):
            raise AttributeError(item)
        try:
            return tuple.__getitem__(self, self._fields.index(item))
        except ValueError:
            raise AttributeError(item)

    def __reduce__(self):
        return (Row.create, (self._fields, tuple(self), self._kind))

    def __repr__(self) -> str:
        return "Row({})".format(
            ", ".join("{}={!r}".format(k, v) for k, v in zip(self._fields, self))
        )


_ROW_TYPES: Dict[Tuple[Tuple[str, ...], str], type] = {}


def _row_type(fields: Tuple[str, ...], kind: str) -> type:
    # One subclass per column list and kind, shared by all rows of a result set
    key = (fields, kind)
    row_type = _ROW_TYPES.get(key)
    if row_type is None:
        row_type = type("Row", (Row,), {"__slots__": (), "_fields": fields, "_kind": kind})
        _ROW_TYPES[key] = row_type
    return row_type


def _to_plain(value: Any) -> Any:
    if isinstance(value, Row):
        return value.asDict(True)
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    return value
