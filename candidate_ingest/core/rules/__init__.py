"""
Row validation rules: YAML loading and the per-row rule engine.
"""

from .rule_config import DEFAULT_RULES_PATH, RuleConfigBuilder, RuleConfigLoader
from .rule_engine import RowValidator

__all__ = ["DEFAULT_RULES_PATH", "RowValidator", "RuleConfigLoader", "RuleConfigBuilder"]
