"""
slotproposer - propose meeting slots from email text and a busy timeline.
"""

__version__ = "0.1.0"
