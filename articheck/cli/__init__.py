"""
CLI entry point for articheck.

Usage:
    checkctl segment <doc.md>
    checkctl verify <doc.md> [options]
    checkctl export <run.json> [--sources]
    checkctl stats <run.json>
    checkctl template <file>

Author: articheck maintainers | 2026-10-19
"""
