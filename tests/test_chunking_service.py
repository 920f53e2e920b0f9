"""Tests for chunking.service and chunking.storage."""

import json

from chunking import ChunkingService, ChunkingServiceConfig, ChunkingStrategy


class TestChunkingService:
    def test_chunk_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("First sentence. Second sentence.", encoding="utf-8")

        service = ChunkingService(ChunkingServiceConfig(data_dir=str(tmp_path / "out")))
        result = service.chunk_file(str(path))

        assert result.total_chunks == 1
        assert result.chunks[0].text == "First sentence. Second sentence."

    def test_configured_strategy_is_default(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("a" * 50, encoding="utf-8")
        config = ChunkingServiceConfig(
            data_dir=str(tmp_path / "out"),
            strategy=ChunkingStrategy(kind="fixed", chunk_size=20, overlap=0),
        )

        result = ChunkingService(config).chunk_file(str(path))
        assert [c.length for c in result.chunks] == [20, 20, 10]

    def test_chunk_and_save(self, tmp_path):
        path = tmp_path / "report.txt"
        path.write_text("One. Two. Three.", encoding="utf-8")
        service = ChunkingService(ChunkingServiceConfig(data_dir=str(tmp_path / "out")))

        result, saved = service.chunk_and_save(str(path))

        data = json.loads(open(saved, encoding="utf-8").read())
        assert saved.startswith(str(tmp_path / "out" / "report"))
        assert "_sentence_" in saved
        assert len(data["chunks"]) == result.total_chunks
