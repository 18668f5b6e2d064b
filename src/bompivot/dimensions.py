"""
Dimension definitions for the bill-of-materials data set.

Path dimensions:
- le: legal entities, PATH split on '//'
- cost_element: cost elements, PATH split on '//'
- smartcode: root smart codes, PATH split on '//'
- gmid_display: component GMIDs, PATH_GMID split on '/'
- mc: management centres, PATH split on '//'

Flat dimensions: item_cost_type, material_type, year
"""

from typing import Dict

from bompivot.hierarchy.schema import HierarchyConfig


def create_bom_dimensions() -> Dict[str, HierarchyConfig]:
    """Dimension configurations keyed by dimension name."""
    configs = [
        HierarchyConfig(
            name="le",
            id_field="LE",
            path_field="PATH",
            separator="//",
            display_name="Legal Entity",
        ),
        HierarchyConfig(
            name="cost_element",
            id_field="COST_ELEMENT",
            label_field="COST_ELEMENT_DESC",
            path_field="PATH",
            separator="//",
            display_name="Cost Element",
        ),
        HierarchyConfig(
            name="smartcode",
            id_field="SMARTCODE",
            label_field="SMARTCODE_DESC",
            path_field="PATH",
            separator="//",
            display_name="Smart Code",
        ),
        HierarchyConfig(
            name="gmid_display",
            id_field="COMPONENT_GMID",
            label_field="DISPLAY",
            path_field="PATH_GMID",
            separator="/",
            display_name="GMID Display",
        ),
        HierarchyConfig(
            name="mc",
            id_field="MC",
            path_field="PATH",
            separator="//",
            display_name="Management Centre",
        ),
        HierarchyConfig(
            name="item_cost_type",
            id_field="ITEM_COST_TYPE",
            label_field="ITEM_COST_TYPE_DESC",
            path_field=None,
            display_name="Item Cost Type",
        ),
        HierarchyConfig(
            name="material_type",
            id_field="MATERIAL_TYPE",
            label_field="MATERIAL_TYPE_DESC",
            path_field=None,
            display_name="Material Type",
        ),
        HierarchyConfig(
            name="year",
            id_field="YEAR",
            path_field=None,
            display_name="Year",
        ),
    ]
    return {c.name: c for c in configs}


BOM_DIMENSIONS = create_bom_dimensions()


def get_dimension_config(name: str) -> HierarchyConfig:
    """Get a BOM dimension configuration by name."""
    if name not in BOM_DIMENSIONS:
        raise ValueError(f"Unknown dimension: {name}. Available: {list(BOM_DIMENSIONS.keys())}")
    return BOM_DIMENSIONS[name]
