"""Hosts file management for lab hostnames."""

import logging
import os
import subprocess
from pathlib import Path

from gatewaylab.utils.errors import HostsFileError

logger = logging.getLogger(__name__)


class HostsFile:
    """Read and rewrite a hosts file, escalating through ``sudo tee`` when needed."""

    def __init__(self, path: str | Path = "/etc/hosts"):
        self.path = Path(path)

    def read_lines(self) -> list[str]:
        """Return the file's lines (without trailing newlines).

        Raises:
            HostsFileError: If the file cannot be read
        """
        try:
            return self.path.read_text().splitlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise HostsFileError(f"Cannot read {self.path}: {e}") from e

    @staticmethod
    def _line_matches(line: str, domain: str) -> bool:
        content = line.split("#", 1)[0].split()
        if len(content) < 2:
            return False
        suffix = f".{domain}"
        return any(name.endswith(suffix) or name == domain for name in content[1:])

    def has_entries(self, domain: str) -> bool:
        """True if any active entry maps a hostname under ``domain``."""
        return any(self._line_matches(line, domain) for line in self.read_lines())

    def add_entry(self, ip: str, hostnames: list[str], domain: str) -> bool:
        """Append ``<ip> <hostnames...>`` unless entries for ``domain`` already exist.

        Returns:
            True if the file was changed
        """
        lines = self.read_lines()
        if any(self._line_matches(line, domain) for line in lines):
            logger.warning(f"Host entries for '{domain}' already exist in {self.path}. Skipping...")
            return False

        entry = f"{ip} {' '.join(hostnames)}"
        self._write(lines + [entry])
        logger.info(f"Added '{entry}' to {self.path}")
        return True

    def remove_entries(self, domain: str) -> int:
        """Remove every entry for hostnames under ``domain``.

        Returns:
            Number of removed lines
        """
        lines = self.read_lines()
        kept = [line for line in lines if not self._line_matches(line, domain)]
        removed = len(lines) - len(kept)

        if removed:
            self._write(kept)
            logger.info(f"Removed {removed} '{domain}' entr{'y' if removed == 1 else 'ies'}")

        return removed

    def _write(self, lines: list[str]) -> None:
        content = "\n".join(lines) + "\n"

        # A missing file is created in place when its directory is writable
        target = self.path if self.path.exists() else self.path.parent
        if os.access(target, os.W_OK):
            try:
                self.path.write_text(content)
                return
            except OSError as e:
                raise HostsFileError(f"Cannot write {self.path}: {e}") from e

        logger.info(f"Updating {self.path} (requires sudo)...")
        try:
            result = subprocess.run(
                ["sudo", "tee", str(self.path)],
                input=content,
                capture_output=True,
                text=True,
                timeout=60,
            )
        except FileNotFoundError as e:
            raise HostsFileError(f"{self.path} is not writable and sudo is not available") from e
        except subprocess.TimeoutExpired as e:
            raise HostsFileError(f"Timeout waiting for sudo to update {self.path}") from e

        if result.returncode != 0:
            raise HostsFileError(f"Failed to update {self.path}: {result.stderr.strip()}")
