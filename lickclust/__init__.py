"""
lickclust
---------
Error-weighted clustering of stellar spectral-index catalogues and Monte
Carlo assessment of how measurement noise moves the silhouette choice of k.
"""

from lickclust.config import AnalysisConfig
from lickclust.dissimilarity import (check_dissimilarity, check_inputs,
                                     error_weighted_dissimilarity)
from lickclust.errors import (ClusteringError, ExcessiveTrialFailures,
                              InvalidDissimilarity, InvalidGroupCount,
                              InvalidShape, InvalidUncertainty)
from lickclust.partition import (METHODS, DivisivePartition, MedoidPartition,
                                 PartitionMethod, WardPartition, get_method)
from lickclust.resampling import ResamplingResult, TrialFailure, run_resampling
from lickclust.validation import (SilhouetteRecord, average_silhouette_width,
                                  best_group_count, compare_methods, silhouette)

__version__ = "0.1.0"
