#!/usr/bin/env python3
"""
Run the raw nonlinear adjoint problem (Van der Pol, Backward Euler).

Usage:
    python scripts/run_nonlinear_adjoint.py
    python scripts/run_nonlinear_adjoint.py --builder-json settings.json

The optional JSON file holds integrator builder settings (nested objects
become sublists) and replaces the default fixed dt = 0.5 configuration.
"""

import argparse
import sys

from adjointsym.drivers import run_raw_nonlinear_adjoint
from adjointsym.parameters import ParameterList, ParameterValidationError


def main():
    """Parse arguments, run the forward and adjoint solves, print a summary."""

    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--builder-json",
        help="JSON file with integrator builder settings",
    )
    args = parser.parse_args()

    builder_parameters = None
    if args.builder_json:
        try:
            builder_parameters = ParameterList.load_json(
                args.builder_json, name="Integrator Builder"
            )
        except (OSError, ValueError) as e:
            print(f"ERROR: could not read {args.builder_json}: {e}")
            sys.exit(1)

    print("=" * 70)
    print("Raw Nonlinear Adjoint (Van der Pol, implicit formulation)")
    print("=" * 70)

    try:
        result = run_raw_nonlinear_adjoint(out=sys.stdout, builder_parameters=builder_parameters)
    except ParameterValidationError as e:
        print(f"\nERROR: invalid builder settings: {e}")
        sys.exit(1)

    print()
    print("=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"Forward steps: {result['fwd_stats']['total_steps']}")
    print(f"Adjoint steps: {result['adj_stats']['total_steps']}")
    print(f"x(t_final)     = {result['x_final']}")
    print(f"lambda(t0)     = {result['lambda_final']}")
    sys.exit(0)


if __name__ == "__main__":
    main()
