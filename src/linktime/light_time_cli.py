from __future__ import annotations

import argparse
from typing import Sequence

import numpy as np

from .convergence import LightTimeConvergenceCriteria, LightTimeFailureHandling
from .errors import LightTimeConfigurationError, LightTimeConvergenceError
from .light_time import LightTimeCalculator
from .multi_leg import MultiLegLightTimeCalculator
from .state_providers import LinearMotionStateProvider


def parse_link_end(text: str) -> LinearMotionStateProvider:
    values = [float(v) for v in text.split(",") if v.strip()]
    if len(values) == 3:
        values += [0.0, 0.0, 0.0]
    if len(values) != 6:
        raise argparse.ArgumentTypeError(
            f"link end must be X,Y,Z or X,Y,Z,VX,VY,VZ (km, km/s); got {text!r}"
        )
    return LinearMotionStateProvider(values[:3], values[3:])


def parse_floats(text: str) -> list[float]:
    try:
        return [float(v) for v in text.split(",") if v.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Solve the light time along a chain of constant-velocity link ends."
    )
    parser.add_argument(
        "--link-end",
        action="append",
        type=parse_link_end,
        required=True,
        help="Link end X,Y,Z[,VX,VY,VZ] in km and km/s at t=0; repeat in signal order.",
    )
    parser.add_argument("--time", type=float, default=0.0, help="Reference time (s).")
    parser.add_argument(
        "--reference", type=int, default=None, help="Index of the reference link end (default: last)."
    )
    parser.add_argument(
        "--delays", type=parse_floats, default=None, help="Comma-separated retransmission delays (s)."
    )
    parser.add_argument("--tolerance", type=float, default=None, help="Absolute tolerance (s).")
    parser.add_argument("--max-iterations", type=int, default=50)
    parser.add_argument(
        "--failure-handling",
        choices=[m.value for m in LightTimeFailureHandling],
        default=LightTimeFailureHandling.ACCEPT_WITHOUT_WARNING.value,
    )
    parser.add_argument(
        "--iterate-corrections", action="store_true", help="Refresh corrections every iteration."
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    link_ends = args.link_end
    if len(link_ends) < 2:
        parser.error("at least two --link-end values are required")
    if args.reference is not None and args.reference < 0:
        parser.error(f"--reference must be a non-negative link-end index; got {args.reference}")

    try:
        criteria = LightTimeConvergenceCriteria(
            iterate_corrections=args.iterate_corrections,
            max_iterations=args.max_iterations,
            absolute_tolerance=args.tolerance,
            failure_handling=args.failure_handling,
        )
        legs = [
            LightTimeCalculator(tx, rx, convergence_criteria=criteria)
            for tx, rx in zip(link_ends[:-1], link_ends[1:])
        ]
        chain = MultiLegLightTimeCalculator(legs)
        reference = args.reference if args.reference is not None else chain.number_of_link_ends - 1
        solution = chain.solve(args.time, reference, retransmission_delays=args.delays)
    except (LightTimeConfigurationError, LightTimeConvergenceError) as exc:
        raise SystemExit(str(exc))

    print(f"total_light_time_s {solution.light_time:.12f}")
    print("leg,transmission_time_s,reception_time_s,light_time_s,range_km")
    for leg in range(solution.number_of_links):
        t_tx, t_rx = solution.leg_times(leg)
        s_tx, s_rx = solution.leg_states(leg)
        range_km = float(np.linalg.norm(s_rx[:3] - s_tx[:3]))
        print(
            f"{leg},{t_tx:.12f},{t_rx:.12f},{solution.leg_light_times[leg]:.12f},{range_km:.6f}"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
