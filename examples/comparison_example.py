"""
Example comparing the assignment strategies on one random workload.
"""

import copy
from datetime import datetime

from drone_dispatch import DispatchAnalyzer, DispatchProblem, Strategy


def main():
    print("=" * 80)
    print("Drone Dispatch - Strategy Comparison")
    print("=" * 80)

    now = datetime.now()
    problem = DispatchProblem.generate_random_problem(
        num_vehicles=4,
        num_orders=20,
        seed=42,
        now=now,
    )
    print(f"\nCreated {problem}")
    print(f"Auto-selected strategy would be: {problem.select_strategy().value}")

    analyzer = DispatchAnalyzer()

    # every strategy gets a fresh copy, dispatch mutates orders and vehicles
    print("\nSolving with different strategies...")
    for strategy in Strategy:
        result = copy.deepcopy(problem).dispatch(strategy, seed=42, now=now)
        analyzer.add_result(result)
        print(f"  ✓ {strategy.value}")

    print("\n")
    analyzer.print_comparison()

    print("\n" + "=" * 80)
    print("STATISTICS")
    print("=" * 80)
    stats = analyzer.get_statistics()
    for column in ("num_assigned", "total_distance", "efficiency"):
        print(f"\n{column}:")
        print(f"  Min:  {stats[column]['min']:.2f}")
        print(f"  Max:  {stats[column]['max']:.2f}")
        print(f"  Avg:  {stats[column]['avg']:.2f}")

    output_file = "comparison_results.json"
    analyzer.export_to_json(output_file)
    print(f"\nResults exported to {output_file}")

    print("\nGenerating visualization...")
    analyzer.visualize(save_path="comparison_plot.png")

    print("\n" + "=" * 80)
    print("Comparison completed!")
    print("=" * 80)


if __name__ == "__main__":
    main()
