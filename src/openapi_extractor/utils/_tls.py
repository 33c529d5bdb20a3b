"""TLS material for the ephemeral control plane.

Generates a throwaway certificate authority and the serving/client
certificates issued from it. Nothing here is meant to outlive a run.
"""

import datetime
import ipaddress
from dataclasses import dataclass
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Self, final

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

KEY_SIZE = 2048
VALIDITY = datetime.timedelta(days=1)


def generate_private_key() -> rsa.RSAPrivateKey:
    """Generate an RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=KEY_SIZE)


def private_key_pem(key: rsa.RSAPrivateKey) -> bytes:
    """Serialize a private key as unencrypted PKCS#8 PEM."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def public_key_pem(key: rsa.RSAPrivateKey) -> bytes:
    """Serialize the public half of a private key as PEM."""
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@dataclass(frozen=True, slots=True)
class KeyPair:
    """A PEM-encoded certificate and its private key."""

    cert_pem: bytes
    key_pem: bytes

    def write(self, directory: Path, name: str) -> tuple[Path, Path]:
        """Write ``<name>.crt`` and ``<name>.key`` into ``directory``.

        Returns:
            The certificate and key paths.
        """
        directory.mkdir(parents=True, exist_ok=True)
        cert_path = directory / f"{name}.crt"
        key_path = directory / f"{name}.key"
        _ = cert_path.write_bytes(self.cert_pem)
        _ = key_path.write_bytes(self.key_pem)
        key_path.chmod(0o600)
        return cert_path, key_path


def _split_hosts(hosts: list[str]) -> list[x509.GeneralName]:
    names: list[x509.GeneralName] = []
    for host in hosts:
        try:
            names.append(x509.IPAddress(ipaddress.ip_address(host)))
        except ValueError:
            names.append(x509.DNSName(host))
    return names


@final
class CertificateAuthority:
    """A self-signed CA able to issue serving and client certificates."""

    __slots__ = ("_cert", "_key")

    def __init__(self, cert: x509.Certificate, key: rsa.RSAPrivateKey) -> None:
        self._cert = cert
        self._key = key

    @classmethod
    def generate(cls, common_name: str = "openapi-extractor-ca") -> Self:
        """Create a new self-signed CA."""
        key = generate_private_key()
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        now = datetime.datetime.now(datetime.UTC)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=5))
            .not_valid_after(now + VALIDITY)
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .sign(key, hashes.SHA256())
        )
        return cls(cert, key)

    @property
    def cert_pem(self) -> bytes:
        """The CA certificate as PEM."""
        return self._cert.public_bytes(serialization.Encoding.PEM)

    def issue(
        self,
        common_name: str,
        *,
        hosts: list[str] | None = None,
        organizations: list[str] | None = None,
        client: bool = False,
    ) -> KeyPair:
        """Issue a certificate signed by this CA.

        Args:
            common_name: Subject common name.
            hosts: DNS names or IP addresses for the SAN extension.
            organizations: Subject organizations (Kubernetes groups).
            client: Issue a client certificate instead of a serving one.

        Returns:
            The issued certificate and its private key.
        """
        key = generate_private_key()
        attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
        attributes.extend(
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, org)
            for org in organizations or []
        )
        now = datetime.datetime.now(datetime.UTC)
        usage = (
            ExtendedKeyUsageOID.CLIENT_AUTH if client else ExtendedKeyUsageOID.SERVER_AUTH
        )
        builder = (
            x509.CertificateBuilder()
            .subject_name(x509.Name(attributes))
            .issuer_name(self._cert.subject)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=5))
            .not_valid_after(now + VALIDITY)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(x509.ExtendedKeyUsage([usage]), critical=False)
        )
        if hosts:
            builder = builder.add_extension(
                x509.SubjectAlternativeName(_split_hosts(hosts)), critical=False
            )
        cert = builder.sign(self._key, hashes.SHA256())
        return KeyPair(
            cert_pem=cert.public_bytes(serialization.Encoding.PEM),
            key_pem=private_key_pem(key),
        )

    def write(self, directory: Path, name: str = "ca") -> Path:
        """Write the CA certificate (not its key) to ``<directory>/<name>.crt``."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}.crt"
        _ = path.write_bytes(self.cert_pem)
        return path
