"""
Collateral Backfill

A run-once migration job that backfills collateral fields across the
catalog service and the promotions document database.

Tasks:
- Products: add xp.IsCollateralProduct = false
- Salons (user groups): add xp.CollateralClassificationID from the salon classification
- Promotions: add HasCollateralBundle = false

Re-running the job only touches records that are still missing their field.
"""

__version__ = "0.1.0"
