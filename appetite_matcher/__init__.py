"""Appetite Matcher — underwriter appetite matching for insurance brokers.

Scores a client's risk profile (industry, requested limit, jurisdictions,
revenue, security controls, special exposures) against the appetite that
underwriters publish in their appetite guides, and returns a ranked,
explained shortlist of top matches and nearest misses.

Document extraction, authentication and presentation live outside this
package; it consumes structured profiles and appetites and produces match
results.
"""

__version__ = "0.1.0"
