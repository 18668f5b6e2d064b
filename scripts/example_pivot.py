#!/usr/bin/env python3
"""
Example: Building a BOM cost pivot.

This script demonstrates how to:
1. Load dimension tables and BOM fact records into the engine
2. Expand and collapse hierarchy nodes on each axis
3. Build pivots for a few layouts
4. Apply exclusion filters
"""

import argparse
import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pandas as pd
import numpy as np

from bompivot.pivot.engine import PivotEngine
from bompivot.pivot.expansion import Zone
from bompivot.pivot.layout import PivotLayout


def create_sample_data():
    """Create sample BOM cost data for demonstration."""
    np.random.seed(42)

    entities = {
        'FR01': 'GROUP//EUROPE//FRANCE//FR01',
        'DE01': 'GROUP//EUROPE//GERMANY//DE01',
        'US01': 'GROUP//AMERICAS//USA//US01',
        'BR01': 'GROUP//AMERICAS//BRAZIL//BR01',
    }
    cost_elements = {
        'CE100': ('Resin', 'COSTS//MATERIAL//CE100'),
        'CE110': ('Additives', 'COSTS//MATERIAL//CE110'),
        'CE200': ('Direct Labour', 'COSTS//CONVERSION//CE200'),
        'CE210': ('Energy', 'COSTS//CONVERSION//CE210'),
        'CE300': ('Freight', 'COSTS//LOGISTICS//CE300'),
    }
    material_types = ['RAW', 'PACK', 'SEMI']

    records = []
    for year in ['2024', '2025']:
        for le in entities:
            for ce in cost_elements:
                base = 100 + np.random.normal(0, 20)

                # Material costs dominate
                if ce.startswith('CE1'):
                    base *= 2.5

                # Americas freight premium
                if ce == 'CE300' and entities[le].startswith('GROUP//AMERICAS'):
                    base *= 1.4

                qty = max(1, int(np.random.uniform(1, 10)))
                records.append({
                    'LE': le,
                    'COST_ELEMENT': ce,
                    'ZYEAR': year,
                    'COMPONENT_MATERIAL_TYPE': material_types[len(records) % 3],
                    'COST_UNIT': round(base, 2),
                    'QTY_UNIT': qty,
                })

    fact_df = pd.DataFrame(records)

    dim_le = pd.DataFrame([{'LE': k, 'PATH': v} for k, v in entities.items()])
    dim_ce = pd.DataFrame([
        {'COST_ELEMENT': k, 'COST_ELEMENT_DESC': desc, 'PATH': path}
        for k, (desc, path) in cost_elements.items()
    ])
    dim_mt = pd.DataFrame({
        'MATERIAL_TYPE': material_types,
        'MATERIAL_TYPE_DESC': ['Raw Material', 'Packaging', 'Semi-finished'],
    })

    return fact_df, {
        'le': dim_le,
        'cost_element': dim_ce,
        'material_type': dim_mt,
    }


def print_result(result):
    print(f"\nLayout: {result.layout.describe()}")
    print(f"Summary: {result.get_summary()}")
    df = result.matrix.to_dataframe()
    labels = {c.key: " / ".join(c.labels) for c in result.row_combinations}
    df.index = [labels[k] for k in df.index]
    print(df.round(2))


def run_demo(output_dir=None):
    """Run a demonstration pivot session."""
    print("=" * 60)
    print("BOMPivot Demo: Hierarchical Cost Pivot")
    print("=" * 60)

    print("\n1. Loading dimensions and facts...")
    fact_df, dim_dfs = create_sample_data()
    engine = PivotEngine()
    engine.load(dim_dfs, fact_df)

    for name in sorted(engine.hierarchies):
        print(f"   {name}: {engine.get_hierarchy(name).stats()}")

    le_root = engine.get_hierarchy("le").root_id
    ce_root = engine.get_hierarchy("cost_element").root_id

    print("\n2. Grand total (everything collapsed)...")
    layout = PivotLayout(row_fields=["le"], measures=["COST_UNIT", "QTY_UNIT"])
    print_result(engine.build(layout))

    print("\n3. Expanding the legal entity root on the row axis...")
    engine.set_expanded("le", Zone.ROW, le_root, True)
    print_result(engine.build(layout))

    print("\n4. Cost elements on the column axis...")
    engine.set_expanded("cost_element", Zone.COLUMN, ce_root, True)
    layout = PivotLayout(row_fields=["le"], column_fields=["cost_element"])
    result = engine.build(layout)
    print_result(result)

    print("\n5. Excluding logistics costs...")
    engine.filters.exclude("cost_element", [f"{ce_root}//LOGISTICS"])
    print(f"   Grand total after exclusion: {engine.grand_total('COST_UNIT'):.2f}")
    print_result(engine.build(layout))

    print("\n6. Two dimensions on the row axis...")
    engine.filters.clear()
    engine.expand_all("cost_element", Zone.ROW)
    print_result(engine.build(PivotLayout(row_fields=["le", "cost_element"],
                                          column_fields=["year"])))

    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        path = os.path.join(output_dir, f"pivot_{layout.layout_id}.csv")
        result.matrix.to_dataframe().to_csv(path)
        print(f"\nPivot saved to {path}")

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Run the BOMPivot demo")
    parser.add_argument("--output", type=str, default=None, help="Directory for CSV export")
    parser.add_argument("--verbose", action="store_true", help="Show engine logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    run_demo(args.output)


if __name__ == "__main__":
    main()
