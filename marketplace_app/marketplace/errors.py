from __future__ import annotations


class ConsistencyError(ValueError):
    """An operation would leave the marketplace data in an inconsistent state."""


def validate_consistent_keys(obj: object, *pairs: tuple[str, object]) -> None:
    """Check that `obj` carries the expected parent keys.

    Each pair is (attribute_path, expected_value); dotted paths walk through
    related objects, e.g. ("task.project_id", project_id).
    """

    for path, expected in pairs:
        value: object = obj
        for part in path.split("."):
            value = getattr(value, part, None)
            if value is None:
                break
        if value != expected:
            raise ConsistencyError(
                f"{type(obj).__name__} does not match {path.rsplit('.', 1)[-1]}={expected}"
            )
