"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps static file extensions to the Content-Type sent with them.

The table is deliberately small and fixed: it lists exactly the asset types
the public directory is expected to hold. Anything else is served as
text/plain.

    style.css   →  text/css
    logo.png    →  image/png
    notes.xyz   →  text/plain        (unknown extension)
    README      →  text/plain        (no extension)

Lookup is case-sensitive: "LOGO.PNG" is not in the table.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Documents and scripts
    ".html": "text/html",
    ".js": "text/javascript",
    ".css": "text/css",
    ".json": "application/json",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".ico": "image/x-icon",
    ".svg": "image/svg+xml",

    # Media
    ".wav": "audio/wav",
    ".mp4": "video/mp4",

    # Fonts
    ".woff": "application/font-woff",
    ".ttf": "application/font-ttf",
    ".eot": "application/vnd.ms-fontobject",
    ".otf": "application/font-otf",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: File path or name with extension
        default: MIME type for unknown extensions (text/plain if omitted)

    Returns:
        The MIME type string

    Examples:
        >>> get_mime_type("public/style.css")
        'text/css'

        >>> get_mime_type("archive.tar.gz")
        'text/plain'
    """
    return MIME_TYPES.get(Path(path).suffix, default or DEFAULT_MIME_TYPE)
