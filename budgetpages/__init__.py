"""
Budget Pages - Source Package

A personal budget tracker: users organise weekly spending pages into
folders, log expenses per day, and get AI-written spending summaries
and a weekly email report.

DESIGN PRINCIPLES:
1. Budget numbers are computed deterministically, never by the AI
2. The AI only narrates numbers it is given
3. An AI failure degrades to a rule-based summary, never an error page
4. Provider keys are encrypted at rest and decrypted only per call
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Pages Team"
