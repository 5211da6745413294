"""Pytest bootstrap ensuring the in-repo svnauth_mcp package is imported.

If an older svnauth_mcp is installed in site-packages, pytest could resolve
that copy first when a single test file is run directly.
"""

import os, sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    # Prepend so it wins over any site-packages installation
    sys.path.insert(0, REPO_ROOT)

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data')


def render_record(pairs):
    """Serialize (key, value) pairs into svn.simple lines, END included."""
    lines = []
    for k, v in pairs:
        lines += [f'K {len(k)}', k, f'V {len(v)}', v]
    lines.append('END')
    return lines


def write_auth_file(dir_path: str, name: str, pairs=None, raw: str = None) -> str:
    os.makedirs(dir_path, exist_ok=True)
    path = os.path.join(dir_path, name)
    body = raw if raw is not None else '\n'.join(render_record(pairs)) + '\n'
    with open(path, 'w', encoding='utf-8') as f:
        f.write(body)
    return path
