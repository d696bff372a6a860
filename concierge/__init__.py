"""
Aurora Concierge - conversational support routing for the storefront

- Rule-based intent classification with a fixed precedence waterfall
- Filter normalization across legacy payload shapes
- Ordered fallback search when a product query comes back empty
- Per-intent handlers returning messages and session patches
"""

from concierge.core.config import ConciergeConfig, get_config, set_config
from concierge.intent.engine import IntentContext, decide_intent
from concierge.models import IntentDecision, NormalizedFilters, ProductSummary, SupportIntent, WidgetSession
from concierge.providers import create_providers
from concierge.scripts import execute_intent
from concierge.widget import ConciergeWidget

__all__ = [
    'ConciergeWidget',
    'ConciergeConfig',
    'get_config',
    'set_config',
    'IntentContext',
    'decide_intent',
    'execute_intent',
    'create_providers',
    'IntentDecision',
    'NormalizedFilters',
    'ProductSummary',
    'SupportIntent',
    'WidgetSession',
]

__version__ = '0.1.0'
