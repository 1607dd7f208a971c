#!/usr/bin/env python3
"""CLI utility to pre-download classifier weights for LesionScan.

Usage:
    python scripts/download_models.py          # Download all general models
    python scripts/download_models.py --list   # List available models
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.classifier import ClassifierAdapter, create_classifier
from core.model_manager import ClassifierKind, ModelManager
from core.utils import ClassifierUnavailable


def main():
    parser = argparse.ArgumentParser(description="Download LesionScan classifier weights.")
    parser.add_argument("--list", action="store_true", help="List available models.")
    args = parser.parse_args()

    mm = ModelManager()

    if args.list:
        print("Available models:")
        print("-" * 60)
        for model in mm.get_registry():
            available = mm.is_model_available(model.name)
            status = "Ready" if available else "Not installed"
            print(f"  {model.display_name}")
            print(f"    Name: {model.name}")
            print(f"    Kind: {model.kind.value}")
            print(f"    Size: ~{model.size_mb:.0f} MB")
            print(f"    Status: {status}")
            print()
        total = mm.get_total_size_formatted()
        print(f"Total stored locally: {total}")
        return

    print("LesionScan Model Downloader")
    print("=" * 40)
    print()

    failed = False
    for model in mm.get_registry():
        if model.kind == ClassifierKind.CHECKPOINT:
            status = "OK" if mm.is_model_available(model.name) else "MISSING"
            print(f"  [{status}] {model.display_name} - place files in {mm.get_models_dir() / model.name}")
            continue

        adapter = ClassifierAdapter(create_classifier(model.name, mm))
        try:
            adapter.warm_up()
            print(f"  [OK] {model.display_name}")
        except ClassifierUnavailable as e:
            failed = True
            print(f"  [FAILED] {model.display_name} - {e}")

    print()
    print("Done.")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
