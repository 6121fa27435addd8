"""Per-directory manifest state: staleness, write, verify, delete."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from treeseal_core.events.models import Control, InvalidSignature, ValidSignature
from treeseal_core.events.sinks import dispatch
from treeseal_core.interfaces.events import EventSink
from treeseal_core.interfaces.trust import TrustPolicy
from treeseal_core.merkle.checksums import ChecksumSet, diff
from treeseal_core.merkle.models import MANIFEST_NAME, ManifestError
from treeseal_core.trust.envelope import decode_payload

logger = logging.getLogger(__name__)

MANIFEST_MODE = 0o644


class DirectoryState:
    """One directory and the manifest file that attests its children."""

    def __init__(
        self,
        path: str | Path,
        policy: TrustPolicy,
        manifest_name: str = MANIFEST_NAME,
    ) -> None:
        self.path = Path(path)
        self.policy = policy
        self.manifest_name = manifest_name
        self.manifest_path = self.path / manifest_name

    def __repr__(self) -> str:
        return f"DirectoryState({str(self.path)!r})"

    # ------------------------------------------------------------------
    # Live state
    # ------------------------------------------------------------------

    def _live_names(self) -> list[str]:
        return [n for n in os.listdir(self.path) if n != self.manifest_name]

    def checksums(self) -> ChecksumSet:
        """Digests of the directory's children as they are on disk now."""
        return ChecksumSet.for_files(self.path, self._live_names(), self.manifest_name)

    def has_manifest(self) -> bool:
        return self.manifest_path.exists()

    def ignored(self) -> bool:
        """Empty directories that were never attested are left alone."""
        return not self._live_names() and not self.has_manifest()

    def needs_update(self) -> bool:
        """True when the manifest is missing or older than any live entry."""
        try:
            manifest_mtime = os.stat(self.manifest_path).st_mtime_ns
        except FileNotFoundError:
            return True
        newest = None
        for name in self._live_names():
            try:
                mtime = os.lstat(self.path / name).st_mtime_ns
            except FileNotFoundError:
                continue
            if newest is None or mtime > newest:
                newest = mtime
        return newest is not None and manifest_mtime < newest

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def write(self) -> ChecksumSet:
        """Sign and persist the live state, then bump the directory mtime.

        The parent sees the bumped directory mtime on its next staleness
        check, which is how changes propagate up the tree.
        """
        checksums = self.checksums()
        blob = self.policy.sign(checksums.to_manifest_text())
        self.manifest_path.write_bytes(blob)
        os.chmod(self.manifest_path, MANIFEST_MODE)
        if hasattr(os, "chown"):
            os.chown(self.manifest_path, -1, os.getgid())
        os.utime(self.path)
        logger.debug("Wrote %s (%d entries)", self.manifest_path, len(checksums))
        return checksums

    def delete(self) -> bool:
        """Remove the manifest; returns False if there was none."""
        try:
            self.manifest_path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Removed %s", self.manifest_path)
        return True

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, sink: EventSink) -> Control:
        """Compare the recorded manifest with the live state, reporting to *sink*.

        A missing manifest is an empty baseline, so every live entry is
        reported as added. The signature event is always delivered before
        the diff; the diff still runs after an invalid signature unless the
        sink answers with a skip. A manifest that does not parse is
        reported as an invalid signature and diffed as an empty baseline.
        Live entries are only hashed once the diff is going to run.
        """
        try:
            blob = self.manifest_path.read_bytes()
        except FileNotFoundError:
            expected = ChecksumSet()
        else:
            opened = self.policy.open(blob)
            valid, message = opened.valid, opened.message
            try:
                expected = ChecksumSet.from_manifest_text(decode_payload(opened.payload))
            except ManifestError as e:
                logger.warning("Malformed manifest %s: %s", self.manifest_path, e)
                expected = ChecksumSet()
                valid, message = False, f"malformed manifest: {e}"
            event_cls = ValidSignature if valid else InvalidSignature
            event = event_cls(
                directory=self.path,
                identity=self.policy.describe(),
                message=message,
            )
            control = dispatch([event], sink)
            if control is not Control.CONTINUE:
                return control
        return dispatch(diff(expected, self.checksums(), self.path), sink)
