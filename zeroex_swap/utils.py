"""
Utility functions for the swap executor's terminal output.
"""
import sys
from typing import Dict, Sequence

SOLSCAN_TX_URL = "https://solscan.io/tx/"


def get_terminal_colors() -> Dict[str, str]:
    """
    Get ANSI color codes for terminal output.

    Returns empty strings if output is not a TTY (e.g., redirected to file),
    so log files stay free of escape codes.

    Returns:
        Dictionary with color codes: GREEN, CYAN, YELLOW, RED, DIM, RESET
    """
    use_color = sys.stdout.isatty()
    return {
        'GREEN': '\033[92m' if use_color else '',   # Success and amounts
        'CYAN': '\033[96m' if use_color else '',    # Addresses, signatures, links
        'YELLOW': '\033[93m' if use_color else '',  # Safety gates (dry run, missing key)
        'RED': '\033[91m' if use_color else '',     # Failures
        'DIM': '\033[90m' if use_color else '',     # Program logs
        'RESET': '\033[0m' if use_color else ''
    }


def solscan_tx_url(signature) -> str:
    """Explorer link for a transaction signature."""
    return f"{SOLSCAN_TX_URL}{signature}"


def format_sim_logs(logs: Sequence[str], tail: int = 0) -> str:
    """
    Format simulation logs one per line, indented.

    Args:
        logs: Program log lines
        tail: If > 0, show only the last N lines
    """
    if not logs:
        return "  (no logs)"
    lines = list(logs)
    if tail > 0 and len(lines) > tail:
        lines = [f"... {len(lines) - tail} earlier lines omitted"] + lines[-tail:]
    return "\n".join(f"  {line}" for line in lines)
