"""Layout of artifacts under the configured root folder."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ArtifactPaths:
    """Store paths for every persisted artifact.

    Attributes:
        root_folder: Folder all artifacts live under.
    """

    root_folder: str

    def inbox(self, date: str) -> str:
        """Daily digest document."""
        return f"{self.root_folder}/inbox/{date}.md"

    @property
    def snapshot_folder(self) -> str:
        return f"{self.root_folder}/papers"

    def snapshot(self, date: str) -> str:
        """Daily snapshot JSON."""
        return f"{self.snapshot_folder}/{date}.json"

    @property
    def dedup(self) -> str:
        return f"{self.root_folder}/cache/seen_ids.json"

    @property
    def tracking(self) -> str:
        return f"{self.root_folder}/cache/community_track.json"

    @property
    def state(self) -> str:
        return f"{self.root_folder}/cache/state.json"

    @property
    def run_log(self) -> str:
        return f"{self.root_folder}/cache/runs.log"

    @property
    def fulltext_folder(self) -> str:
        return f"{self.root_folder}/cache/fulltext"

    def fulltext(self, base_id: str) -> str:
        """Cached full text of one paper."""
        return f"{self.fulltext_folder}/{base_id}.md"

    def deep_read(self, date: str, file_name: str, folder: str = "deep-read") -> str:
        """Deep-read note for one paper, grouped by digest date."""
        return f"{self.root_folder}/{folder}/{date}/{file_name}.md"

    def weekly(self, week_label: str) -> str:
        """Weekly rollup document, ``week_label`` like ``2025-W03``."""
        return f"{self.root_folder}/weekly/{week_label}.md"

    def monthly(self, month_label: str) -> str:
        """Monthly rollup document, ``month_label`` like ``2025-01``."""
        return f"{self.root_folder}/monthly/{month_label}.md"
