"""Command-line tools for GlobalFood.

- ``python -m globalfood.cli search`` -- run one aggregated restaurant search
- ``python -m globalfood.cli status`` -- show provider credential states
"""
