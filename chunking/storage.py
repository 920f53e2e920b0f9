from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .models import ChunkingResult


@dataclass
class ChunkingPaths:
    source_id: str
    chunk_dir: Path
    chunk_file: Path


class ChunkingStorage:
    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def build_paths(self, source_id: str, strategy_kind: str) -> ChunkingPaths:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        chunk_dir = self.data_dir / source_id
        chunk_dir.mkdir(parents=True, exist_ok=True)
        chunk_file = chunk_dir / f"{source_id}_{strategy_kind}_{timestamp}.json"
        return ChunkingPaths(
            source_id=source_id,
            chunk_dir=chunk_dir,
            chunk_file=chunk_file,
        )

    def save(self, source_id: str, result: ChunkingResult) -> ChunkingPaths:
        paths = self.build_paths(source_id, result.strategy.kind)
        result.save(str(paths.chunk_file))
        return paths
