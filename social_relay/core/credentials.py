from typing import Optional

def resolve_credential(override: Optional[str], fallback: Optional[str]) -> Optional[str]:
    """
    Pick a credential value, preferring the request override.

    Both values are trimmed; an empty value counts as missing.

    Args:
        override: Value supplied with the request
        fallback: Process-wide default from settings

    Returns:
        The trimmed value to use, or None if neither is set
    """
    for value in (override, fallback):
        if value is not None and value.strip():
            return value.strip()
    return None
