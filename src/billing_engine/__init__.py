"""Construction progress billing engine.

Schedule of Values, AIA G702/G703 pay applications with carry-forward,
certification workflow and lien waiver tracking.
"""

__version__ = "1.0.0"
