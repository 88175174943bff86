import datetime
import plistlib
from collections.abc import Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


def _self_signed_der(common_name: str) -> bytes:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


def wrap_plist(xml: bytes, *, declared_length: int | None = None) -> bytes:
    """Embed plist bytes in a fake DER envelope with a 2-byte length prefix."""
    length = len(xml) if declared_length is None else declared_length
    head = b"\x30\x82\x10\x00\x06\x09\x2a\x86\x48\x86\xf7\x0d\x01\x07\x02\x04\x82"
    tail = b"\xa0\x82\x0c\x00\x30\x82" + b"\x00" * 16
    return head + length.to_bytes(2, "big") + xml + tail


@pytest.fixture(scope="session")
def cert_der() -> bytes:
    return _self_signed_der("Apple Development: Test (ABCDE12345)")


@pytest.fixture(scope="session")
def other_cert_der() -> bytes:
    return _self_signed_der("Apple Distribution: Test (ABCDE12345)")


@pytest.fixture
def profile_dict(cert_der) -> Callable[..., dict]:
    def _make(
        *,
        app_id: str = "ABCDE12345.com.foo.Game",
        prefixes: tuple[str, ...] = ("ABCDE12345",),
        name: str = "Game Development",
        devices: tuple[str, ...] = (),
        debug: bool = False,
        certs: list | None = None,
        entitlements: dict | None = None,
    ) -> dict:
        ent = {"application-identifier": app_id, "get-task-allow": debug}
        if entitlements:
            ent.update(entitlements)
        d = {
            "AppIDName": "Game",
            "ApplicationIdentifierPrefix": list(prefixes),
            "DeveloperCertificates": [cert_der] if certs is None else certs,
            "Entitlements": ent,
            "Name": name,
        }
        if devices:
            d["ProvisionedDevices"] = list(devices)
        return d

    return _make


@pytest.fixture
def provision_bytes(profile_dict) -> Callable[..., bytes]:
    def _make(**kwargs) -> bytes:
        return wrap_plist(plistlib.dumps(profile_dict(**kwargs), fmt=plistlib.FMT_XML))

    return _make


@pytest.fixture
def write_provision(provision_bytes) -> Callable[..., str]:
    def _write(directory, filename: str, **kwargs) -> str:
        path = directory / filename
        path.write_bytes(provision_bytes(**kwargs))
        return str(path)

    return _write
