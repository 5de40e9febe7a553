"""Convert equirectangular panoramas into multires cube tile sets."""

from panotiles.config import (TileSetDescriptor, build_descriptor, calculate_cube_resolution,
                              calculate_max_level, generate_config)
from panotiles.encoders import (InlineEncoder, ProcessPoolEncoder, ThreadPoolEncoder,
                                create_encoder)
from panotiles.errors import (ConfigurationError, DisposedError, EncodingError, PanoTilesError,
                              ResourceLimitError, SourceLoadError)
from panotiles.models import (FACE_NAMES, CubeFace, ProcessConfig, ProgressInfo, RawResult,
                              ResultMetadata, StreamItem, StreamResult, Tile, TilerOptions,
                              ZipResult)
from panotiles.pipeline import PanoramaTiler
from panotiles.reprojection import FACE_CONFIGS, Reprojector
from panotiles.resources import ResourceTracker
from panotiles.tiler import Tiler

__version__ = "0.1.0"

__all__ = [
    "FACE_CONFIGS",
    "FACE_NAMES",
    "ConfigurationError",
    "CubeFace",
    "DisposedError",
    "EncodingError",
    "InlineEncoder",
    "PanoTilesError",
    "PanoramaTiler",
    "ProcessConfig",
    "ProcessPoolEncoder",
    "ProgressInfo",
    "RawResult",
    "Reprojector",
    "ResourceLimitError",
    "ResourceTracker",
    "ResultMetadata",
    "SourceLoadError",
    "StreamItem",
    "StreamResult",
    "ThreadPoolEncoder",
    "Tile",
    "TileSetDescriptor",
    "Tiler",
    "TilerOptions",
    "ZipResult",
    "build_descriptor",
    "calculate_cube_resolution",
    "calculate_max_level",
    "create_encoder",
    "generate_config",
]
