"""
Path Matching
=============
Request path normalization and prefix matching on path-segment boundaries.
"""


def clean_path(path: str) -> str:
    """
    Resolve '.' and '..' segments and collapse repeated slashes.
    
    The result is always absolute. A trailing slash on the input is kept
    so that '/docs/' and '/docs' stay distinguishable for patterns that
    end in a slash.
    """
    if not path:
        return "/"
    trailing = path.endswith("/")
    segments = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    cleaned = "/" + "/".join(segments)
    if trailing and cleaned != "/":
        cleaned += "/"
    return cleaned


def path_matches(path: str, pattern: str, case_sensitive: bool = True) -> bool:
    """
    Check whether a cleaned request path falls under a rule pattern.
    
    '/admin' matches '/admin', '/admin/' and '/admin/users' but not
    '/administrator'. A pattern ending in '/' only matches paths below it.
    An empty pattern or '/' matches everything.
    """
    if pattern in ("", "/"):
        return True
    base = clean_path(pattern)
    if not case_sensitive:
        path = path.lower()
        base = base.lower()
    if base.endswith("/"):
        return path.startswith(base)
    return path == base or path.startswith(base + "/")


def matches_any(path: str, patterns, case_sensitive: bool = True) -> bool:
    """Check a path against a collection of patterns."""
    return any(path_matches(path, p, case_sensitive) for p in patterns)
