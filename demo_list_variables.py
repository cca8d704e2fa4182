#!/usr/bin/env python3
"""
Demo: Walk a BHV2 file.

Lists every variable, then re-reads the trials keeping only their
metadata fields and prints them as JSON.

With no argument, an example file is generated first.
"""

import argparse
import logging
import os
import tempfile

from bhv2 import open_stream
from bhv2.config import DEFAULT_LIMITS, load_limits
from bhv2.examples import build_example_trial_file
from bhv2.inventory import list_variables
from bhv2.serialization import value_to_json

TRIAL_FIELDS = ("Trial", "Block", "Condition", "TrialError")


def main():
    parser = argparse.ArgumentParser(description="List the variables of a BHV2 file")
    parser.add_argument("file", nargs="?", help="BHV2 file (default: generated example)")
    parser.add_argument("--limits", help="YAML file overriding the decoder limits")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each variable read")
    args = parser.parse_args()

    if args.verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.DEBUG)
    limits = load_limits(args.limits) if args.limits else DEFAULT_LIMITS

    path = args.file
    if path is None:
        path = os.path.join(tempfile.mkdtemp(), "example.bhv2")
        build_example_trial_file(path, trial_count=5)
        print(f"Generated example file: {path}")

    print("=" * 80)
    print("VARIABLES")
    print("=" * 80)
    inventory = list_variables(path, limits=limits)
    for summary in inventory.variables:
        print(f"  {summary.describe()}")

    print("\n" + "=" * 80)
    print("TRIAL METADATA")
    print("=" * 80)
    with open_stream(path, limits=limits) as f:
        while True:
            name = f.next_name()
            if name is None:
                break
            if not name.startswith("Trial"):
                f.skip_value()
                continue
            value = f.read_value_selective(TRIAL_FIELDS)
            print(f"{name}: {value_to_json(value, compact=True)}")


if __name__ == "__main__":
    main()
