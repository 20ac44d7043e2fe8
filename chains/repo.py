"""
chains/repo.py - Local checkout of the chain registry.

Clones the registry on first use and pulls it once it is older than
the staleness threshold. A failed pull is retried once after a hard
reset to origin/master.
"""

import shutil
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

from core.constants import DEFAULT_REPO_URL, DEFAULT_STALE_HOURS
from core.exceptions import RegistryError
from core.logging import get_logger

logger = get_logger(__name__)

GIT_TIMEOUT_SECONDS = 300

Runner = Callable[[list[str]], None]


def run_git(args: list[str]) -> None:
    """Run a git command, raising RegistryError on failure."""
    git = shutil.which("git")
    if git is None:
        raise RegistryError("git executable not found")
    try:
        subprocess.run(
            [git, *args],
            check=True,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except subprocess.CalledProcessError as e:
        raise RegistryError(
            f"git {args[0] if args else ''} failed: {(e.stderr or '').strip()}",
            details={"args": args, "returncode": e.returncode},
        ) from e
    except subprocess.TimeoutExpired as e:
        raise RegistryError(
            f"git {args[0] if args else ''} timed out",
            details={"args": args, "timeout_s": GIT_TIMEOUT_SECONDS},
        ) from e


class RegistryRepo:
    """Clone-or-pull manager for the registry checkout."""

    def __init__(
        self,
        repo_dir: Path,
        repo_url: str = DEFAULT_REPO_URL,
        stale_hours: int = DEFAULT_STALE_HOURS,
        runner: Optional[Runner] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.repo_dir = Path(repo_dir)
        self.repo_url = repo_url
        self.stale_hours = stale_hours
        self._run = runner or run_git
        self._clock = clock

    @property
    def exists(self) -> bool:
        return (self.repo_dir / ".git").exists()

    def age_hours(self) -> Optional[float]:
        """Hours since the checkout was last touched, None if absent."""
        if not self.exists:
            return None
        mtime = (self.repo_dir / ".git").stat().st_mtime
        return (self._clock() - mtime) / 3600

    def is_stale(self) -> bool:
        age = self.age_hours()
        return age is None or age > self.stale_hours

    def sync(self, force: bool = False) -> str:
        """
        Bring the checkout up to date.

        Returns:
            "cloned", "updated" or "fresh"

        Raises:
            RegistryError: If clone, or pull and its reset fallback, fail
        """
        if not self.exists:
            self.repo_dir.parent.mkdir(parents=True, exist_ok=True)
            logger.info(
                f"Cloning registry: {self.repo_url}",
                extra={"context": {"repo_dir": str(self.repo_dir)}},
            )
            self._run(["clone", "--depth", "1", self.repo_url, str(self.repo_dir)])
            return "cloned"

        if not force and not self.is_stale():
            logger.debug(
                "Registry checkout is fresh",
                extra={"context": {"age_hours": round(self.age_hours() or 0, 2)}},
            )
            return "fresh"

        repo = str(self.repo_dir)
        try:
            self._run(["-C", repo, "pull"])
        except RegistryError as e:
            logger.warning(
                f"Registry pull failed, resetting: {e.message}",
                extra={"context": {"repo_dir": repo}},
            )
            self._run(["-C", repo, "fetch", "--all"])
            self._run(["-C", repo, "reset", "--hard", "origin/master"])
            self._run(["-C", repo, "pull"])

        # Pull may be a no-op; touch so staleness is measured from this sync
        (self.repo_dir / ".git").touch()
        logger.info("Registry updated", extra={"context": {"repo_dir": repo}})
        return "updated"
