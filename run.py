#!/usr/bin/env python3
"""
Simple launcher script for the swap executor.
"""
import argparse
import sys
from zeroex_swap.main import main
import asyncio

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='0x Solana swap executor')
    parser.add_argument(
        '--env-file',
        default=None,
        help='Path to a .env file (default: .env in the repository root)'
    )

    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(main(env_path=args.env_file)))
    except KeyboardInterrupt:
        print("\nSwap interrupted by user")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
