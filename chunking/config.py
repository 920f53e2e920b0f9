from dataclasses import dataclass, field

from .models import ChunkingStrategy


@dataclass
class ChunkingServiceConfig:
    data_dir: str = "data/chunking"
    strategy: ChunkingStrategy = field(default_factory=ChunkingStrategy)
