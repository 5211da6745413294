import os, re
from dataclasses import dataclass, asdict
from typing import List, Tuple, Optional, Dict, Any

from .parser import read_auth_file, AuthParseError
from ..unseal import SecretUnsealer, UnsealError, unsealer_for
from ..debug_util import dbg

# Subversion names each cached credential file after the MD5 hex of its realm string
AUTH_FILENAME_LENGTH = 32
AUTH_FILE_PATTERN = re.compile(r"^.{%d}$" % AUTH_FILENAME_LENGTH)

DEFAULT_MAX_FILES = 200

KEY_USERNAME = 'username'
KEY_REALM = 'svn:realmstring'
KEY_PASSWORD = 'password'
KEY_PASSTYPE = 'passtype'
REQUIRED_KEYS = (KEY_USERNAME, KEY_REALM, KEY_PASSWORD)

STATUS_OK = 'ok'
STATUS_NOT_DECRYPTED = 'not_decrypted'
STATUS_PARSE_ERROR = 'parse_error'
STATUS_MISSING_FIELDS = 'missing_fields'
STATUS_DECRYPT_FAILED = 'decrypt_failed'
STATUS_READ_FAILED = 'read_failed'
ALL_STATUSES = (STATUS_OK, STATUS_NOT_DECRYPTED, STATUS_PARSE_ERROR, STATUS_MISSING_FIELDS,
                STATUS_DECRYPT_FAILED, STATUS_READ_FAILED)

DECRYPT_FAILED_MESSAGE = 'Unable to decrypt the password'


@dataclass
class CredentialRecord:
    file: str
    path: str
    status: str
    repository: Optional[str] = None
    username: Optional[str] = None
    encrypted_password: Optional[str] = None
    password: Optional[str] = None
    passtype: Optional[str] = None
    error: Optional[str] = None
    line_num: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_auth_dir() -> str:
    """Location of the svn.simple store for the current user.

    SVN_AUTH_DIR wins; then %APPDATA%\\Subversion\\auth\\svn.simple (Windows
    clients such as TortoiseSVN); then ~/.subversion/auth/svn.simple.
    """
    override = os.environ.get('SVN_AUTH_DIR')
    if override:
        return override
    appdata = os.environ.get('APPDATA')
    if appdata:
        return os.path.join(appdata, 'Subversion', 'auth', 'svn.simple')
    return os.path.join(os.path.expanduser('~'), '.subversion', 'auth', 'svn.simple')


def discover_auth_files(root: str, max_files: int = DEFAULT_MAX_FILES) -> Tuple[List[str], List[str]]:
    """Find cached credential files directly under root.

    Selection:
      * regular files whose name is exactly AUTH_FILENAME_LENGTH characters
      * sorted by name so repeated scans report in the same order
      * at most max_files (clamped >= 1); extra files are dropped with a warning
    Returns (selected_paths, warnings)
    """
    dbg(f'discover_auth_files start root={root} max_files={max_files}')
    warnings: List[str] = []
    if not os.path.isdir(root):
        dbg(f'discover_auth_files missing dir={root}')
        return [], ['auth_dir_missing']
    candidates = []
    for name in sorted(os.listdir(root)):
        if not AUTH_FILE_PATTERN.match(name):
            continue
        full = os.path.join(root, name)
        if os.path.isfile(full):
            candidates.append(full)
    if not candidates:
        return [], ['no_auth_files']
    if max_files < 1:
        max_files = 1
        warnings.append('max_files_clamped_min1')
    total = len(candidates)
    if total > max_files:
        warnings.append('max_files_truncated')
        candidates = candidates[:max_files]
    warnings.append(f'selected_{len(candidates)}_of_{total}_candidates')
    dbg(f'discover_auth_files selected={len(candidates)} warnings={warnings}')
    return candidates, warnings


def extract_credential(path: str, unsealer: Optional[SecretUnsealer] = None, decrypt: bool = True) -> CredentialRecord:
    """Parse one credential file and, if asked, recover its password.

    Failures are folded into the returned record's status instead of being
    raised, so one broken file never hides the others.
    """
    rec = CredentialRecord(file=os.path.basename(path), path=path, status=STATUS_OK)
    try:
        props = read_auth_file(path)
    except AuthParseError as e:
        rec.status = STATUS_PARSE_ERROR
        rec.error = e.message
        rec.line_num = e.line_num
        dbg(f'extract_credential parse_error file={rec.file} line={e.line_num}')
        return rec
    except (OSError, UnicodeDecodeError) as e:
        rec.status = STATUS_READ_FAILED
        rec.error = f'read_failed:{e.__class__.__name__}'
        dbg(f'extract_credential read_failed file={rec.file} err={e.__class__.__name__}')
        return rec

    rec.username = props.get(KEY_USERNAME)
    rec.repository = props.get(KEY_REALM)
    rec.encrypted_password = props.get(KEY_PASSWORD)
    rec.passtype = props.get(KEY_PASSTYPE)
    missing = [k for k in REQUIRED_KEYS if k not in props]
    if missing:
        rec.status = STATUS_MISSING_FIELDS
        rec.error = 'missing:' + ','.join(missing)
        dbg(f'extract_credential skip file={rec.file} {rec.error}')
        return rec

    if not decrypt:
        rec.status = STATUS_NOT_DECRYPTED
        return rec
    try:
        u = unsealer if unsealer is not None else unsealer_for(rec.passtype)
        rec.password = u.unseal(rec.encrypted_password)
    except UnsealError as e:
        rec.status = STATUS_DECRYPT_FAILED
        rec.error = DECRYPT_FAILED_MESSAGE
        dbg(f'extract_credential decrypt_failed file={rec.file} reason={e}')
    return rec


def read_cached_credentials(paths: List[str], unsealer: Optional[SecretUnsealer] = None, decrypt: bool = True) -> Tuple[List[CredentialRecord], Dict[str, int]]:
    """Extract credentials from each path in order.

    Args:
        paths: credential files (usually from discover_auth_files)
        unsealer: fixed unsealer; None picks one per file from its passtype
        decrypt: False leaves password unset and status 'not_decrypted'

    Returns:
        (records, stats) where stats counts records per status
    """
    dbg(f'read_cached_credentials start paths={len(paths)} decrypt={decrypt}')
    records: List[CredentialRecord] = []
    stats = {s: 0 for s in ALL_STATUSES}
    for path in paths:
        rec = extract_credential(path, unsealer=unsealer, decrypt=decrypt)
        stats[rec.status] += 1
        records.append(rec)
    dbg(f'read_cached_credentials done stats={stats}')
    return records, stats
