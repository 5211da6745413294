import sys
import pytest
from svnauth_mcp.unseal import (
    DpapiUnsealer, PlaintextUnsealer, UnsealError, unsealer_for,
)


def test_plaintext_passthrough():
    assert PlaintextUnsealer().unseal(' spaced ') == ' spaced '


@pytest.mark.parametrize('passtype', ['simple', 'SIMPLE', ' simple '])
def test_simple_passtype(passtype):
    assert isinstance(unsealer_for(passtype), PlaintextUnsealer)


def test_wincrypt_passtype():
    assert isinstance(unsealer_for('wincrypt'), DpapiUnsealer)


@pytest.mark.parametrize('passtype', ['keychain', 'gnome-keyring', 'kwallet', 'gpg-agent'])
def test_external_store_passtypes_rejected(passtype):
    with pytest.raises(UnsealError):
        unsealer_for(passtype)


def test_missing_passtype_follows_platform(monkeypatch):
    monkeypatch.setattr(sys, 'platform', 'linux')
    assert isinstance(unsealer_for(None), PlaintextUnsealer)
    monkeypatch.setattr(sys, 'platform', 'win32')
    assert isinstance(unsealer_for(''), DpapiUnsealer)


@pytest.mark.skipif(sys.platform == 'win32', reason='DPAPI available here')
def test_dpapi_off_windows_raises():
    with pytest.raises(UnsealError):
        DpapiUnsealer().unseal('AQAAANCMnd8BFdERjHoAwE/Cl+s=')


@pytest.mark.skipif(sys.platform != 'win32', reason='needs Windows DPAPI')
def test_dpapi_rejects_bad_base64():
    with pytest.raises(UnsealError):
        DpapiUnsealer().unseal('not base64 !!')
