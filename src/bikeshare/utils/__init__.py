import os


def get_size(path: str) -> str:
    """Size of a file in kilobytes, for log messages."""
    size_in_kb = round(os.path.getsize(path) / 1024)
    return f"~ {size_in_kb} KB"
