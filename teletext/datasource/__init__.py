"""
Content sources: provider adapters, fallback chains and background refresh.
"""

from teletext.datasource.base import DemoProvider, ProviderAdapter
from teletext.datasource.chain import SourceChain
from teletext.datasource.models import DataEnvelope, Provenance
from teletext.datasource.scheduler import RefreshScheduler
from teletext.datasource.source_manager import SourceManager, SourcesConfig

__all__ = [
    "DataEnvelope",
    "DemoProvider",
    "Provenance",
    "ProviderAdapter",
    "RefreshScheduler",
    "SourceChain",
    "SourceManager",
    "SourcesConfig",
]
