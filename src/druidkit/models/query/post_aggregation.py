"""
Arithmetic post-aggregations.

Post-aggregations are computed by the broker from already aggregated values.
They are written with plain Python arithmetic on the fields exposed by a
[`PostAggregationScope`][druidkit.models.query.post_aggregation.PostAggregationScope]
and named with `as_()`:

```python
query.postagg(lambda p: (p.clicks / p.impressions * 100).as_("ctr"))
```

produces

```json
{"type": "arithmetic", "name": "ctr", "fn": "*", "fields": [
    {"type": "arithmetic", "name": "clicks/impressions", "fn": "/", "fields": [
        {"type": "fieldAccess", "name": "clicks", "fieldName": "clicks"},
        {"type": "fieldAccess", "name": "impressions", "fieldName": "impressions"}]},
    {"type": "constant", "name": "100", "value": 100}]}
```
"""

from numbers import Number
from typing import Any, Dict, List, Optional


def _as_operand(value: Any) -> "PostAggregation":
    if isinstance(value, PostAggregation):
        return value
    if isinstance(value, Number) and not isinstance(value, bool):
        return PostAggregationConstant(value)
    raise TypeError(
        f"Unsupported post-aggregation operand of type '{type(value).__name__}'."
    )


class PostAggregation:
    """Base class of every post-aggregation term."""

    name: Optional[str] = None
    is_named: bool = False
    """True once the term was explicitly named with `as_()`."""

    def as_(self, name: str) -> "PostAggregation":
        """Names the term; the top-level term of a post-aggregation must be named."""
        self.name = name
        self.is_named = True
        return self

    def field_names(self) -> List[str]:
        """Names of the aggregated fields referenced by this term, in order."""
        return []

    def _arith(self, fn: str, other: Any, reflected: bool = False):
        other = _as_operand(other)
        left, right = (other, self) if reflected else (self, other)
        return PostAggregationOperation(fn, [left, right])

    def __add__(self, other):
        return self._arith("+", other)

    def __radd__(self, other):
        return self._arith("+", other, reflected=True)

    def __sub__(self, other):
        return self._arith("-", other)

    def __rsub__(self, other):
        return self._arith("-", other, reflected=True)

    def __mul__(self, other):
        return self._arith("*", other)

    def __rmul__(self, other):
        return self._arith("*", other, reflected=True)

    def __truediv__(self, other):
        return self._arith("/", other)

    def __rtruediv__(self, other):
        return self._arith("/", other, reflected=True)

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


class PostAggregationField(PostAggregation):
    def __init__(self, field_name: str):
        self.field_name = field_name
        self.name = field_name

    def field_names(self) -> List[str]:
        return [self.field_name]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "fieldAccess", "name": self.name, "fieldName": self.field_name}


class PostAggregationConstant(PostAggregation):
    def __init__(self, value: Any):
        self.value = value
        self.name = str(value)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "constant", "name": self.name, "value": self.value}


class PostAggregationOperation(PostAggregation):
    def __init__(self, fn: str, fields: List[PostAggregation]):
        self.fn = fn
        self.fields = fields
        self.name = fn.join(field.name or "" for field in fields)

    def field_names(self) -> List[str]:
        names = []
        for field in self.fields:
            for name in field.field_names():
                if name not in names:
                    names.append(name)
        return names

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "arithmetic",
            "name": self.name,
            "fn": self.fn,
            "fields": [field.to_dict() for field in self.fields],
        }


class PostAggregationScope:
    """The object handed to `Query.postagg()` builder functions."""

    def field(self, name: str) -> PostAggregationField:
        return PostAggregationField(name)

    def constant(self, value: Any) -> PostAggregationConstant:
        return PostAggregationConstant(value)

    def __getattr__(self, name: str) -> PostAggregationField:
        if name.startswith("__"):
            raise AttributeError(name)
        return self.field(name)

    def __getitem__(self, name: str) -> PostAggregationField:
        return self.field(name)
