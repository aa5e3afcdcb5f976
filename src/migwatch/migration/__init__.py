"""Migration classification, detection and enrichment."""

from migwatch.migration.classifier import parse_migration_transaction
from migwatch.migration.detector import Detector
from migwatch.migration.enricher import MigrationEnricher, sort_by_market_cap

__all__ = [
    "Detector",
    "MigrationEnricher",
    "parse_migration_transaction",
    "sort_by_market_cap",
]
