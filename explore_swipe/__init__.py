"""
Explore Swipe - swipe-to-explore places for trip itineraries.
"""

__version__ = "0.1.0"
