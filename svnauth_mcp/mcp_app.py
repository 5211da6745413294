import os
from typing import List, Optional, Dict, Any

from .ingestion.auth_ingest import (
    default_auth_dir, discover_auth_files, read_cached_credentials, DEFAULT_MAX_FILES,
    KEY_PASSWORD,
)
from .ingestion.parser import read_auth_file, AuthParseError
from .debug_util import dbg
from fastmcp import FastMCP

# ----------------- System Prompt Guidance -----------------
SYSTEM_PROMPT = (
    "Workflow (svn.simple credential store):\n"
    "1. auth_store_info(path=optional) shows which directory is scanned and how many candidate files it holds.\n"
    "2. scan_credentials(path=optional, max_files=optional, decrypt=true) parses every 32-character file and returns one record per file.\n"
    "3. Record status is one of ok | not_decrypted | parse_error | missing_fields | decrypt_failed | read_failed.\n"
    "4. parse_error records carry line_num (null means the file ended before END).\n"
    "5. Passwords are masked unless reveal_passwords=true; only reveal when the user explicitly asks for their own credentials.\n"
    "6. parse_auth_file(path) dumps the raw key/value pairs of a single file for troubleshooting.\n"
    "7. DPAPI (wincrypt) passwords only decrypt on Windows for the user that saved them.\n"
)

MASK = '********'

mcp = FastMCP("svnauth-mcp")


def _resolve_dir(path: Optional[str]) -> str:
    return path or default_auth_dir()


def _mask(value: Optional[str], reveal: bool) -> Optional[str]:
    if value is None or reveal:
        return value
    return MASK


def _auth_store_info_impl(path: Optional[str] = None) -> dict:
    auth_dir = _resolve_dir(path)
    files, warnings = discover_auth_files(auth_dir, max_files=DEFAULT_MAX_FILES)
    return {
        'auth_dir': os.path.abspath(auth_dir),
        'exists': os.path.isdir(auth_dir),
        'candidate_files': [os.path.basename(f) for f in files],
        'warnings': warnings,
    }


def _parse_auth_file_impl(path: str, reveal: bool = False) -> dict:
    dbg(f'parse_auth_file: path={path}')
    try:
        props = read_auth_file(path)
    except AuthParseError as e:
        return {'error': 'parse_error', 'detail': e.message, 'path': path, 'line_num': e.line_num}
    except FileNotFoundError:
        return {'error': 'not_found', 'path': path}
    except (OSError, UnicodeDecodeError) as e:
        return {'error': 'read_failed', 'detail': e.__class__.__name__, 'path': path}
    values = {k: (_mask(v, reveal) if k == KEY_PASSWORD else v) for k, v in props.items()}
    return {'path': path, 'keys': sorted(props), 'values': values}


def _scan_credentials_impl(path: Optional[str] = None, max_files: int = DEFAULT_MAX_FILES, decrypt: bool = True, reveal_passwords: bool = False) -> dict:
    auth_dir = _resolve_dir(path)
    dbg(f'scan_credentials: dir={auth_dir} max_files={max_files} decrypt={decrypt}')
    files, warnings = discover_auth_files(auth_dir, max_files=max_files)
    records, stats = read_cached_credentials(files, decrypt=decrypt)
    out: List[Dict[str, Any]] = []
    for rec in records:
        d = rec.to_dict()
        d['password'] = _mask(rec.password, reveal_passwords)
        d['encrypted_password'] = _mask(rec.encrypted_password, reveal_passwords)
        out.append(d)
    return {
        'auth_dir': os.path.abspath(auth_dir),
        'files_found': len(files),
        'records': out,
        'stats': stats,
        'warnings': warnings,
    }

# ----------------- Tools -----------------

@mcp.tool()
def auth_store_info(path: Optional[str] = None) -> dict:
    """Describe the credential store directory.

    Returns {auth_dir, exists, candidate_files[], warnings}. Defaults to SVN_AUTH_DIR,
    then %APPDATA%/Subversion/auth/svn.simple, then ~/.subversion/auth/svn.simple."""
    return _auth_store_info_impl(path)


@mcp.tool()
def parse_auth_file(path: str, reveal: bool = False) -> dict:
    """Parse a single credential file into its raw key/value pairs.

    Returns {path, keys[], values{}} or {error, path, line_num?}. The password value is
    masked unless reveal=True."""
    return _parse_auth_file_impl(path, reveal=reveal)


@mcp.tool()
def scan_credentials(path: Optional[str] = None, max_files: int = DEFAULT_MAX_FILES, decrypt: bool = True, reveal_passwords: bool = False) -> dict:
    """Scan the credential store and extract username / repository / password per file.

    One broken file never stops the scan; its record carries status + error instead.
    Returns {auth_dir, files_found, records[], stats{status: count}, warnings, workflow_prompt}."""
    out = _scan_credentials_impl(path=path, max_files=max_files, decrypt=decrypt, reveal_passwords=reveal_passwords)
    out['workflow_prompt'] = SYSTEM_PROMPT
    return out


if __name__ == '__main__':
    host = os.environ.get('HOST', '127.0.0.1')
    port = int(os.environ.get('PORT', '8000'))
    print(f'Starting FastMCP on {host}:{port}')
    mcp.run(transport="http", host=host, port=port, stateless_http=True)
