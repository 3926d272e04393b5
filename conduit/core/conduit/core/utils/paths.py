import os


def expand_tilde_str(value: str) -> str:
    """Expand a leading '~' to the user home directory, leaving other strings untouched."""
    return os.path.expanduser(value) if isinstance(value, str) and value.startswith("~") else value
