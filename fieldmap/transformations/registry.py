"""Pipeline definition registry: loads from JSON/YAML files.

- One file per pipeline in the definitions directory (*.json, *.yaml, *.yml)
- Lazy loading with _loaded guard
- In-memory dict keyed by pipeline_key
- Global singleton via get_pipeline_registry()
- CRUD with file persistence (saves always write JSON unless the
  pipeline was loaded from YAML)
"""

import json
import logging
from pathlib import Path
from typing import Optional

import yaml

from fieldmap import config

from .schemas import PipelineDefinition, PipelineSummary

logger = logging.getLogger(__name__)

_PATTERNS = ("*.json", "*.yaml", "*.yml")


class PipelineRegistry:
    """Registry of pipeline definitions loaded from files."""

    def __init__(self, definitions_dir: Optional[Path] = None):
        if definitions_dir is None:
            definitions_dir = config.DEFINITIONS_DIR
        self.definitions_dir = Path(definitions_dir)
        self._pipelines: dict[str, PipelineDefinition] = {}
        self._file_map: dict[str, Path] = {}
        self._loaded = False

    def _read(self, path: Path) -> dict:
        with open(path, "r") as f:
            if path.suffix in (".yaml", ".yml"):
                return yaml.safe_load(f) or {}
            return json.load(f)

    def load(self) -> None:
        """Load all pipeline definitions from disk."""
        if self._loaded:
            return

        if not self.definitions_dir.exists():
            logger.warning(
                f"Pipeline definitions directory not found: {self.definitions_dir}"
            )
            self._loaded = True
            return

        files = sorted(
            path for pattern in _PATTERNS for path in self.definitions_dir.glob(pattern)
        )
        for path in files:
            try:
                pipeline = PipelineDefinition.model_validate(self._read(path))
                if pipeline.pipeline_key in self._pipelines:
                    logger.warning(
                        f"Duplicate pipeline key '{pipeline.pipeline_key}' in "
                        f"{path}; keeping {self._file_map[pipeline.pipeline_key]}"
                    )
                    continue
                self._pipelines[pipeline.pipeline_key] = pipeline
                self._file_map[pipeline.pipeline_key] = path
                logger.debug(f"Loaded pipeline: {pipeline.pipeline_key}")
            except Exception as e:
                logger.error(f"Failed to load pipeline from {path}: {e}")

        self._loaded = True
        logger.info(f"Loaded {len(self._pipelines)} pipeline definitions")

    def get(self, pipeline_key: str) -> Optional[PipelineDefinition]:
        """Get a pipeline by key."""
        self.load()
        return self._pipelines.get(pipeline_key)

    def list_all(self) -> list[PipelineDefinition]:
        self.load()
        return list(self._pipelines.values())

    def list_summaries(self, tag: Optional[str] = None) -> list[PipelineSummary]:
        """List pipeline summaries, optionally filtered by tag."""
        self.load()
        pipelines = self._pipelines.values()
        if tag:
            pipelines = [p for p in pipelines if tag in p.tags]

        return [
            PipelineSummary(
                pipeline_key=p.pipeline_key,
                pipeline_name=p.pipeline_name,
                description=p.description,
                step_count=len(p.steps),
                tags=p.tags,
                status=p.status,
            )
            for p in sorted(pipelines, key=lambda p: p.pipeline_key)
        ]

    def list_keys(self) -> list[str]:
        self.load()
        return sorted(self._pipelines.keys())

    def count(self) -> int:
        self.load()
        return len(self._pipelines)

    def save(self, pipeline_key: str, pipeline: PipelineDefinition) -> bool:
        """Save a pipeline to its definition file."""
        self.load()

        path = self._file_map.get(
            pipeline_key, self.definitions_dir / f"{pipeline_key}.json"
        )
        data = pipeline.model_dump(mode="json", by_alias=False)

        try:
            self.definitions_dir.mkdir(parents=True, exist_ok=True)

            with open(path, "w") as f:
                if path.suffix in (".yaml", ".yml"):
                    yaml.safe_dump(data, f, sort_keys=False)
                else:
                    json.dump(data, f, indent=2)
                    f.write("\n")

            self._pipelines[pipeline_key] = pipeline
            self._file_map[pipeline_key] = path

            logger.info(f"Saved pipeline: {pipeline_key} -> {path}")
            return True

        except Exception as e:
            logger.error(f"Failed to save pipeline {pipeline_key}: {e}")
            return False

    def delete(self, pipeline_key: str) -> bool:
        """Delete a pipeline and its file."""
        self.load()

        if pipeline_key not in self._pipelines:
            return False

        path = self._file_map.get(
            pipeline_key, self.definitions_dir / f"{pipeline_key}.json"
        )

        try:
            if path.exists():
                path.unlink()

            del self._pipelines[pipeline_key]
            self._file_map.pop(pipeline_key, None)

            logger.info(f"Deleted pipeline: {pipeline_key}")
            return True

        except Exception as e:
            logger.error(f"Failed to delete pipeline {pipeline_key}: {e}")
            return False

    def reload(self) -> None:
        """Force reload all definitions."""
        self._loaded = False
        self._pipelines.clear()
        self._file_map.clear()
        self.load()


# Global registry instance
_registry: Optional[PipelineRegistry] = None


def get_pipeline_registry() -> PipelineRegistry:
    """Get the global pipeline registry instance."""
    global _registry
    if _registry is None:
        _registry = PipelineRegistry()
        _registry.load()
    return _registry
