from .loader import load_config
from .models import (
    RunOptions,
    ScanConfig,
    TreeSealConfig,
    TrustConfig,
)

__all__ = [
    "RunOptions",
    "ScanConfig",
    "TreeSealConfig",
    "TrustConfig",
    "load_config",
]
