from pathlib import Path

from .chunker import TextChunker
from .config import ChunkingServiceConfig
from .models import ChunkingResult, ChunkingStrategy
from .storage import ChunkingStorage


class ChunkingService:
    def __init__(self, config: ChunkingServiceConfig | None = None):
        self.config = config or ChunkingServiceConfig()
        self.chunker = TextChunker(self.config.strategy)
        self.storage = ChunkingStorage(self.config.data_dir)

    def chunk_file(
        self, path: str, strategy: ChunkingStrategy | None = None
    ) -> ChunkingResult:
        return self.chunker.chunk_file(path, strategy)

    def chunk_and_save(
        self, path: str, strategy: ChunkingStrategy | None = None
    ) -> tuple[ChunkingResult, str]:
        result = self.chunk_file(path, strategy)
        source_id = Path(path.replace("\\", "/")).stem
        paths = self.storage.save(source_id, result)
        return result, str(paths.chunk_file)
