"""
Wazai Map activity aggregator.

This package provides:
- Searching tech events and places from many independent sources
- Resolving free-text addresses into coordinates (gazetteer + geocoder chain)
- Filtering the merged result by keyword, country and provider

Target: Japan and Taiwan tech communities
Focus: Meetups, conferences, study groups
"""

__version__ = "1.0.0"
