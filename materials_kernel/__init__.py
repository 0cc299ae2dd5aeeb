"""
Materials Kernel - inventory projection and alerting core.

A transactional core for construction-project material inventory with:
- Consumption projection against activity progress
- FEFO batch allocation for perishable materials
- Precedence-aware blocking detection
- Rule-based alert regeneration
- Atomic progress confirmation
"""

__version__ = "0.1.0"
