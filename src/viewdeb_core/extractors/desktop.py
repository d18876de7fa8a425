from typing import Dict

from ..errors import ReadError

DESKTOP_ENTRY_HEADER = "[Desktop Entry]"


def parse_desktop_entry(content: str) -> Dict[str, str]:
    """
    Returns the key/value pairs of the ``[Desktop Entry]`` group.

    Parsing stops at the next group header, so keys from action groups
    never leak into the result. Later duplicates overwrite earlier ones.
    """
    entry: Dict[str, str] = {}
    in_entry = False

    for line in content.splitlines():
        stripped = line.strip()

        if stripped == DESKTOP_ENTRY_HEADER:
            in_entry = True
            continue
        if not in_entry:
            continue
        if stripped.startswith("[") and stripped.endswith("]"):
            break
        if stripped.startswith("#") or "=" not in stripped:
            continue

        key, _, value = stripped.partition("=")
        entry[key.strip()] = value.strip()

    return entry


def read_desktop_entry(file_path: str) -> Dict[str, str]:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ReadError(f"Failed to read desktop file: {e}") from e
    return parse_desktop_entry(content)
