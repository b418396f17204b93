"""
Shop Dashboard

Analytics engine behind a retail shop's operational dashboard:
- Comparative period statistics over sales, products and repairs
- Chart-ready time buckets, product/customer leaderboards, category splits
- Held (parked) sale tracking with a dismiss/snooze banner policy
"""

__version__ = "1.0.0"
__author__ = "Shop Dashboard"
