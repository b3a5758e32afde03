"""
BRCA Random Survival Forest - Analysis Pipeline
===============================================

Package structure:
- config: Constants and configuration
- errors: Pipeline exceptions
- data_loader: Data loading and validation
- features: Univariate Cox feature screening
- models: Survival forest fit and out-of-bag read-back
- evaluation: Hyperparameter grid and OOB sweep
- optimization: Numba-accelerated computations
- reporting: Survival curves and extremal-subject selection
- visualization: Figures
- pipeline: End-to-end run
"""

from . import config
from . import errors
from . import data_loader
from . import features
from . import models
from . import evaluation
from . import optimization
from . import reporting

__version__ = "1.0.0"
