"""Source decoders for tabular import (file I/O only, no DB)."""

from pathlib import Path

from intake_pipeline.adapters.base import (
    SourceProbe,
    TabularDecoder,
    load_source,
    probe_source,
    select_sheet,
)
from intake_pipeline.adapters.csv_adapter import CsvSourceAdapter
from intake_pipeline.adapters.json_adapter import JsonSourceAdapter


def decoder_for(source_path: Path | str) -> TabularDecoder:
    """Bundled decoder for a file extension (.json -> JSON, anything else -> CSV)."""
    if Path(source_path).suffix.lower() == ".json":
        return JsonSourceAdapter()
    return CsvSourceAdapter()


__all__ = [
    "CsvSourceAdapter",
    "JsonSourceAdapter",
    "SourceProbe",
    "TabularDecoder",
    "decoder_for",
    "load_source",
    "probe_source",
    "select_sheet",
]
