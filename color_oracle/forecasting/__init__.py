"""
Forecasting core - period engine, predictor pool and ledger.

Modules:
    categories - Color/size classification of outcome digits
    ledger - Per-predictor win/loss bookkeeping
    predictors - Concurrent predictor pool with fallback interpretation
    backends - OpenAI chat backend for predictor slots
    engine - Period lifecycle state machine
    scheduler - Serialized tick queue and poll timer
    status - Read-only status projection
"""

from . import categories
from . import ledger
from . import predictors
from . import engine
from . import scheduler
from . import status
