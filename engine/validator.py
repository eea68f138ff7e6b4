def validate(condition, message):
    """Raise ValueError with `message` when `condition` is falsy."""
    if not condition:
        raise ValueError(message)
