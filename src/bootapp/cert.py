"""Self-signed certificates for project domains."""

import logging
import re
import shutil
from pathlib import Path
from typing import List

from bootapp.context import ReconcileContext
from bootapp.errors import CertError, CommandFailed
from bootapp.models.manifest import ComposeManifest
from bootapp.utils.process import run_command
from bootapp.utils.templates import render_template


logger = logging.getLogger(__name__)

KEY_BITS = 2048
VALID_DAYS = 3650
SYSTEM_KEYCHAIN = "/Library/Keychains/System.keychain"

OPENSSL_CONFIG = """\
[req]
prompt = no
distinguished_name = dn

[dn]
C = US
ST = CA
L = MV
O = Tech
OU = IT
CN = {{ domain }}
emailAddress = admin@{{ domain }}

[SAN]
subjectAltName = DNS:{{ domain }}
"""

_SHA1 = re.compile(r"SHA-1 hash:\s*(?P<hash>[0-9A-Fa-f]+)")


def ssl_domains(manifest: ComposeManifest) -> List[str]:
    """DOMAIN tokens of every service that also sets USE_SSL."""
    domains = []
    for service in manifest.services.values():
        if service.use_ssl:
            domains.extend(d for d in service.domains if d not in domains)
    return domains


class CertManager:
    """Issues certificates into ``var/certs`` and trusts them system-wide."""

    def __init__(self, runner=None, cert_dir: str = "var/certs"):
        self._runner = runner or run_command
        self.cert_dir = cert_dir

    def paths(self, context: ReconcileContext, domain: str):
        base = Path(context.cwd) / self.cert_dir
        return base / f"{domain}.crt", base / f"{domain}.key"

    async def install(self, manifest: ComposeManifest, context: ReconcileContext, renew: bool = False) -> List[Path]:
        """Issue and trust a certificate per SSL domain; returns the new certificate files."""
        issued = []
        for domain in ssl_domains(manifest):
            crt, key = self.paths(context, domain)
            logger.info(f"cert    | domain {domain}")

            if crt.exists() != key.exists():
                raise CertError(f"check {crt.parent}/{domain}.*")
            if crt.exists():
                if not renew:
                    continue
                crt.unlink()
                key.unlink()

            await self.generate(domain, crt, key)
            await self.trust(domain, crt, context)
            issued.append(crt)
        return issued

    async def generate(self, domain: str, crt: Path, key: Path):
        crt.parent.mkdir(parents=True, exist_ok=True)
        config = crt.parent / f"{domain}.cnf"
        config.write_text(render_template(OPENSSL_CONFIG, domain=domain))
        try:
            await self._runner(["openssl", "genrsa", "-out", str(key), str(KEY_BITS)])
            await self._runner([
                "openssl", "req", "-new", "-x509",
                "-key", str(key),
                "-out", str(crt),
                "-sha256",
                "-days", str(VALID_DAYS),
                "-extensions", "SAN",
                "-config", str(config),
            ])
        except CommandFailed as e:
            raise CertError(f"certificate for {domain} could not be issued: {e}") from e
        finally:
            config.unlink(missing_ok=True)

    async def trust(self, domain: str, crt: Path, context: ReconcileContext):
        if context.is_linux:
            await self._trust_linux(domain, crt)
        else:
            await self._trust_darwin(domain, crt)
        logger.info(f"        | trusted ./{self.cert_dir}/{domain}.crt")

    async def _trust_linux(self, domain: str, crt: Path):
        if shutil.which("update-ca-certificates"):
            anchor = f"/usr/local/share/ca-certificates/{domain}.crt"
            refresh = ["sudo", "update-ca-certificates"]
        else:
            anchor = f"/etc/pki/ca-trust/source/anchors/{domain}.crt"
            refresh = ["sudo", "update-ca-trust", "extract"]
        await self._runner(["sudo", "cp", str(crt), anchor])
        await self._runner(["sudo", "chmod", "0444", anchor])
        await self._runner(refresh)

    async def _trust_darwin(self, domain: str, crt: Path):
        result = await self._runner(
            ["security", "find-certificate", "-a", "-Z", "-c", domain], check=False
        )
        for match in _SHA1.finditer(result.stdout):
            await self._runner(
                ["sudo", "security", "delete-certificate", "-Z", match["hash"], SYSTEM_KEYCHAIN],
                check=False,
            )
        await self._runner([
            "sudo", "security", "add-trusted-cert", "-d", "-r", "trustRoot",
            "-k", SYSTEM_KEYCHAIN, str(crt),
        ])
