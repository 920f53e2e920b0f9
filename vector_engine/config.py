from dataclasses import dataclass
import os

from ann_index import HNSWParams


@dataclass
class EngineConfig:
    default_dimension: int = 768
    hnsw_m: int = 16
    hnsw_ef_construction: int = 200
    hnsw_ef_search: int = 50
    hnsw_seed: int | None = None
    over_sample_factor: int = 2
    embedding_model: str = "nomic-embed-text"
    ollama_base_url: str = "http://localhost:11434"
    ledger_base_url: str = ""
    ledger_timeout: float = 10.0
    ledger_max_retries: int = 3
    ledger_backoff_seconds: float = 0.5
    rehydrate_on_startup: bool = True

    @property
    def ledger_enabled(self) -> bool:
        return bool(self.ledger_base_url)

    def hnsw_params(self) -> HNSWParams:
        return HNSWParams(
            m=self.hnsw_m,
            ef_construction=self.hnsw_ef_construction,
            ef_search=self.hnsw_ef_search,
            seed=self.hnsw_seed,
        )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        def _int(name: str, default: int) -> int:
            value = os.environ.get(name)
            return int(value) if value else default

        def _float(name: str, default: float) -> float:
            value = os.environ.get(name)
            return float(value) if value else default

        def _bool(name: str, default: bool) -> bool:
            value = os.environ.get(name)
            if not value:
                return default
            return value.strip().lower() in {"1", "true", "yes", "on"}

        seed = os.environ.get("HNSW_SEED")

        return cls(
            default_dimension=_int("VECTOR_DIMENSION", cls.default_dimension),
            hnsw_m=_int("HNSW_M", cls.hnsw_m),
            hnsw_ef_construction=_int("HNSW_EF_CONSTRUCTION", cls.hnsw_ef_construction),
            hnsw_ef_search=_int("HNSW_EF_SEARCH", cls.hnsw_ef_search),
            hnsw_seed=int(seed) if seed else None,
            over_sample_factor=_int("SEARCH_OVER_SAMPLE_FACTOR", cls.over_sample_factor),
            embedding_model=os.environ.get("EMBEDDING_MODEL", cls.embedding_model),
            ollama_base_url=os.environ.get("OLLAMA_BASE_URL", cls.ollama_base_url),
            ledger_base_url=os.environ.get("LEDGER_BASE_URL", cls.ledger_base_url),
            ledger_timeout=_float("LEDGER_TIMEOUT", cls.ledger_timeout),
            ledger_max_retries=_int("LEDGER_MAX_RETRIES", cls.ledger_max_retries),
            ledger_backoff_seconds=_float("LEDGER_BACKOFF_SECONDS", cls.ledger_backoff_seconds),
            rehydrate_on_startup=_bool("LEDGER_REHYDRATE", cls.rehydrate_on_startup),
        )
