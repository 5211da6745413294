import os, tempfile, shutil
import pytest
from svnauth_mcp import mcp_app as app
from conftest import DATA_DIR, write_auth_file

SAMPLE_NAME = '0f1e2d3c4b5a69788796a5b4c3d2e1f0'
SAMPLE = os.path.join(DATA_DIR, SAMPLE_NAME)

# Helper to unwrap FastMCP tool objects (they may be descriptors with .fn or .__wrapped__)
def _tool(t):
    return getattr(t, 'fn', None) or getattr(t, '__wrapped__', None) or t


@pytest.fixture
def store(monkeypatch):
    td = tempfile.mkdtemp(prefix='svn_simple_')
    monkeypatch.setenv('SVN_AUTH_DIR', td)
    try:
        yield td
    finally:
        shutil.rmtree(td, ignore_errors=True)


def test_auth_store_info_uses_env_dir(store):
    shutil.copy(SAMPLE, os.path.join(store, SAMPLE_NAME))
    info = _tool(app.auth_store_info)()
    assert info['auth_dir'] == os.path.abspath(store)
    assert info['exists'] is True
    assert info['candidate_files'] == [SAMPLE_NAME]


def test_auth_store_info_missing_dir(store):
    info = _tool(app.auth_store_info)(path=os.path.join(store, 'nope'))
    assert info['exists'] is False and info['warnings'] == ['auth_dir_missing']


def test_parse_auth_file_masks_password():
    out = _tool(app.parse_auth_file)(SAMPLE)
    assert out['keys'] == ['passtype', 'password', 'svn:realmstring', 'username']
    assert out['values']['password'] == app.MASK
    assert out['values']['username'] == 'alice'


def test_parse_auth_file_reveal():
    out = _tool(app.parse_auth_file)(SAMPLE, reveal=True)
    assert out['values']['password'] == 's3cret-pass'


def test_parse_auth_file_errors(store):
    bad = write_auth_file(store, 'x' * 32, raw='K 2\nab\nV 9\nshort\n')
    out = _tool(app.parse_auth_file)(bad)
    assert out['error'] == 'parse_error' and out['line_num'] == 4
    missing = _tool(app.parse_auth_file)(os.path.join(store, 'absent'))
    assert missing['error'] == 'not_found'


def test_scan_credentials_masks_by_default(store):
    shutil.copy(SAMPLE, os.path.join(store, SAMPLE_NAME))
    write_auth_file(store, 'a' * 32, raw='not a record\n')
    body = _tool(app.scan_credentials)()
    assert body['files_found'] == 2
    assert body['stats']['ok'] == 1 and body['stats']['parse_error'] == 1
    ok = [r for r in body['records'] if r['status'] == 'ok'][0]
    assert ok['username'] == 'alice'
    assert ok['repository'] == '<https://svn.example.com:443> Example Repository'
    assert ok['password'] == app.MASK and ok['encrypted_password'] == app.MASK
    assert 'workflow_prompt' in body


def test_scan_credentials_reveal(store):
    shutil.copy(SAMPLE, os.path.join(store, SAMPLE_NAME))
    body = _tool(app.scan_credentials)(reveal_passwords=True)
    assert body['records'][0]['password'] == 's3cret-pass'


def test_scan_credentials_no_decrypt(store):
    shutil.copy(SAMPLE, os.path.join(store, SAMPLE_NAME))
    body = _tool(app.scan_credentials)(decrypt=False, reveal_passwords=True)
    rec = body['records'][0]
    assert rec['status'] == 'not_decrypted' and rec['password'] is None
    assert rec['encrypted_password'] == 's3cret-pass'


def test_scan_credentials_max_files(store):
    for i in range(3):
        shutil.copy(SAMPLE, os.path.join(store, '%032d' % i))
    body = _tool(app.scan_credentials)(max_files=2)
    assert body['files_found'] == 2
    assert 'max_files_truncated' in body['warnings']


def test_system_prompt_mentions_tools():
    for name in ('scan_credentials', 'parse_auth_file', 'auth_store_info', 'reveal_passwords'):
        assert name in app.SYSTEM_PROMPT
