"""
sar - Fuzzy line finder for (optionally Vim-encrypted) notes.

Modules:
    - config: Run configuration (roots, workers, extensions)
    - cipher: VimCrypt header detection and zip-method decryption
    - extractor: Line records from decoded file content
    - scanner: Recursive traversal and file classification
    - pipeline: Worker pool feeding one shared record channel
    - stream: Byte stream adaptor with mirror sequence
    - resolver: Selector index back to the streamed record
    - selector: fzf front end
    - actions: Editor, reveal, print, create-new
    - cli: Command line entry point

Flow:
    Scan → Decrypt (if needed) → Extract → Channel → Stream → fzf → Resolve

Usage:
    from sar import PipelineCoordinator, SarConfig, StreamAdaptor

    coordinator = PipelineCoordinator(SarConfig(roots=[notes_dir]))
    stream = StreamAdaptor(coordinator.start())
"""

from .config import SarConfig
from .pipeline import PipelineCoordinator, RecordChannel
from .resolver import SelectionResolver
from .stream import MirrorSequence, StreamAdaptor

__all__ = [
    "MirrorSequence",
    "PipelineCoordinator",
    "RecordChannel",
    "SarConfig",
    "SelectionResolver",
    "StreamAdaptor",
]
