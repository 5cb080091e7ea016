"""
FlavorPulse
===========

Offline pipeline turning copy-pasted Amazon review pages into per-flavor
sentiment records for the office flavor poll.

Stages (each a standalone batch run, see flavorpulse.cli):
    parse    raw dump -> data/amazon-reviews.json
    analyze  reviews  -> data/sentiment-results.json (LLM, one call per flavor)
    sync     results  -> flavor_sentiment / flavor_comments tables
"""

__version__ = "1.0.0"
