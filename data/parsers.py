"""
Parser for Excel benchmark cards.

A benchmark card is a workbook that overrides the built-in benchmarks with
agency- or client-specific numbers. It may contain any of three sheets:

- ``Channels``: columns ``channel``, ``unit_cost``, ``production_ratio``
- ``Funnel``: columns ``focus``, ``conversion_rate``, ``base_roas``
- ``Settings``: columns ``key``, ``value`` for scalar benchmarks
"""

import pandas as pd
import logging
from dataclasses import replace
from typing import Dict, Any, Optional
from pathlib import Path

from models.data_models import CampaignFocus, Channel
from business_logic.benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


SETTING_KEYS = (
    'cost_per_click',
    'missing_creative_uplift',
    'max_production_ratio',
    'min_production_budget',
    'min_total_budget',
    'min_channel_budget',
    'realistic_max_roas',
    'optimistic_max_roas',
    'impossible_roas',
)


class BenchmarkCardParser:
    """
    Reads benchmark overrides from an Excel workbook.

    Rows that cannot be parsed are skipped with a warning; unknown sheets
    are ignored.
    """

    SHEETS = ('Channels', 'Funnel', 'Settings')

    def __init__(self, file_path: str):
        """
        Initialize the parser with a benchmark card path.

        Raises:
            FileNotFoundError: If the workbook does not exist
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Benchmark card not found: {file_path}")
        self._sheets: Optional[Dict[str, pd.DataFrame]] = None

    def _read_sheets(self) -> Dict[str, pd.DataFrame]:
        if self._sheets is None:
            workbook = pd.read_excel(self.file_path, sheet_name=None)
            self._sheets = {
                name: frame.rename(columns=lambda c: str(c).strip().lower())
                for name, frame in workbook.items()
                if name in self.SHEETS
            }
            if not self._sheets:
                raise ValueError(
                    f"Benchmark card has no Channels, Funnel or Settings sheet: {self.file_path.name}"
                )
            logger.info(f"Read benchmark card sheets: {', '.join(self._sheets)}")
        return self._sheets

    def parse_channels(self) -> Dict[str, Dict[Channel, float]]:
        """Per-channel unit costs and production ratios."""
        unit_costs: Dict[Channel, float] = {}
        production_ratios: Dict[Channel, float] = {}

        df = self._read_sheets().get('Channels')
        if df is None:
            return {'unit_costs': unit_costs, 'production_ratios': production_ratios}

        for _, row in df.iterrows():
            raw_channel = row.get('channel')
            if pd.isna(raw_channel):
                continue
            try:
                channel = Channel(str(raw_channel).strip().upper())
            except ValueError:
                logger.warning(f"Unknown channel in benchmark card: {raw_channel}")
                continue

            unit_cost = self._positive(row.get('unit_cost'))
            if unit_cost is not None:
                unit_costs[channel] = unit_cost

            ratio = self._positive(row.get('production_ratio'))
            if ratio is not None and ratio < 1:
                production_ratios[channel] = ratio

        logger.info(f"Parsed {len(unit_costs)} channel costs from benchmark card")
        return {'unit_costs': unit_costs, 'production_ratios': production_ratios}

    def parse_funnel(self) -> Dict[str, Dict[CampaignFocus, float]]:
        """Conversion rate and base ROAS per campaign focus."""
        conversion_rates: Dict[CampaignFocus, float] = {}
        base_roas: Dict[CampaignFocus, float] = {}

        df = self._read_sheets().get('Funnel')
        if df is None:
            return {'conversion_rates': conversion_rates, 'base_roas': base_roas}

        for _, row in df.iterrows():
            raw_focus = row.get('focus')
            if pd.isna(raw_focus):
                continue
            try:
                focus = CampaignFocus(str(raw_focus).strip().upper())
            except ValueError:
                logger.warning(f"Unknown campaign focus in benchmark card: {raw_focus}")
                continue

            rate = self._positive(row.get('conversion_rate'))
            if rate is not None and rate <= 1:
                conversion_rates[focus] = rate

            roas = self._positive(row.get('base_roas'))
            if roas is not None:
                base_roas[focus] = roas

        return {'conversion_rates': conversion_rates, 'base_roas': base_roas}

    def parse_settings(self) -> Dict[str, float]:
        """Scalar overrides keyed by BenchmarkTable field name."""
        settings: Dict[str, float] = {}

        df = self._read_sheets().get('Settings')
        if df is None:
            return settings

        for _, row in df.iterrows():
            key = str(row.get('key', '')).strip().lower()
            if key not in SETTING_KEYS:
                if key and key != 'nan':
                    logger.warning(f"Ignoring unknown benchmark setting: {key}")
                continue
            value = self._positive(row.get('value'))
            if value is not None:
                settings[key] = value

        return settings

    def load_benchmarks(self, base: Optional[BenchmarkTable] = None) -> BenchmarkTable:
        """
        Build a benchmark table from the card, falling back to ``base``.

        Raises:
            ValueError: If the resulting ROAS thresholds are not increasing
        """
        base = base or DEFAULT_BENCHMARKS
        channels = self.parse_channels()
        funnel = self.parse_funnel()
        settings = self.parse_settings()

        overrides: Dict[str, Any] = dict(settings)
        overrides['channel_unit_costs'] = {**base.channel_unit_costs, **channels['unit_costs']}
        overrides['channel_production_ratios'] = {
            **base.channel_production_ratios, **channels['production_ratios']
        }
        overrides['conversion_rates'] = {**base.conversion_rates, **funnel['conversion_rates']}
        overrides['base_roas'] = {**base.base_roas, **funnel['base_roas']}

        table = replace(base, **overrides)
        if not table.realistic_max_roas < table.optimistic_max_roas < table.impossible_roas:
            raise ValueError("Benchmark card ROAS thresholds must increase: realistic < optimistic < impossible")

        logger.info(f"Loaded benchmark card {self.file_path.name} with {len(settings)} setting overrides")
        return table

    @staticmethod
    def _positive(value: Any) -> Optional[float]:
        if value is None or pd.isna(value):
            return None
        try:
            number = float(str(value).replace(',', '').strip())
        except ValueError:
            logger.warning(f"Invalid numeric value in benchmark card: {value}")
            return None
        return number if number > 0 else None
