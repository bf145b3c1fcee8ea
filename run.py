#!/usr/bin/env python3
"""
FundingArb Bot - Entry Point
Ensures the project root is importable before starting the bot.
"""
import asyncio
import sys
import traceback
from pathlib import Path

project_root = Path(__file__).parent.resolve()

if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from main import main  # noqa: E402

if __name__ == "__main__":
    print(f"Project root: {project_root}")
    print("Starting FundingArb Bot...\n")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nBot stopped by user")
    except Exception as e:
        print(f"\nFatal error: {e}")
        traceback.print_exc()
        sys.exit(1)
