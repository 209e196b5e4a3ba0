from __future__ import annotations

from pathlib import Path

from tf_autopilot.errors import PersistenceError
from tf_autopilot.log import get_logger
from tf_autopilot.models import PersistedFile
from tf_autopilot.naming import next_available_path

logger = get_logger(__name__)

TERRAFORM_EXTENSION = ".tf"


class ArtifactStore:
    def __init__(self, output_dir: Path, extension: str = TERRAFORM_EXTENSION):
        self.output_dir = Path(output_dir)
        self.extension = extension

    def init_dir(self) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"failed to create {self.output_dir} directory", str(exc)) from exc

    def save(self, code: str, resource: str, provider: str) -> PersistedFile:
        """Write ``code`` under the next free name for ``resource``.

        The file is opened in exclusive-create mode; when another writer took
        the allocated name first, allocation continues from the next index.
        """
        self.init_dir()
        start = 1
        while True:
            path, index = next_available_path(
                self.output_dir, resource, provider, self.extension, start=start
            )
            try:
                with path.open("x", encoding="utf-8") as handle:
                    handle.write(code)
            except FileExistsError:
                logger.info("Filename taken concurrently, retrying", filename=path.name)
                start = index + 1
                continue
            except OSError as exc:
                raise PersistenceError("failed to write terraform file", str(exc)) from exc

            logger.info("Saved terraform file", path=str(path))
            return PersistedFile(path=str(path), provider_tag=provider, sequence_index=index)

    def list_files(self, provider: str | None = None) -> list[Path]:
        if not self.output_dir.exists():
            return []
        pattern = f"{provider}_*{self.extension}" if provider else f"*{self.extension}"
        return sorted(self.output_dir.glob(pattern))
