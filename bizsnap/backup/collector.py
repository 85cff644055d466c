"""Read the business collections selected by backup options."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..base import BaseStoreClient
from .._utils import logger
from .models import BackupOptions


@dataclass(frozen=True)
class DomainArea:
    """One selectable area of the business data."""
    flag: str
    collections: Tuple[str, ...]
    labels: Tuple[str, ...]


DOMAIN_AREAS: Tuple[DomainArea, ...] = (
    DomainArea("include_sales_data", ("sales_invoices", "customers"), ("Sales", "Customers")),
    DomainArea("include_purchases_data", ("purchase_invoices", "suppliers"), ("Purchases", "Suppliers")),
    DomainArea("include_inventory_data", ("products", "inventory_movements"), ("Inventory", "Products")),
    DomainArea("include_employees_data", ("employees", "payroll"), ("Employees", "Payroll")),
    DomainArea(
        "include_financial_data",
        ("transactions", "expenses", "checks", "installments"),
        ("Financial transactions", "Expenses"),
    ),
    DomainArea("include_investors_data", ("investors", "investor_purchases"), ("Investors",)),
)

SETTINGS_GROUPS: Tuple[str, ...] = ("company_settings", "app_settings", "user_settings", "security_settings")
SETTINGS_LABEL = "Settings"


@dataclass
class CollectedData:
    data: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)


class DataCollector:
    """Assemble the data and settings maps for a new backup.

    Data keys are the store keys themselves, so a restore writes each
    collection back where it was read from.
    """

    def __init__(self, client: BaseStoreClient):
        self.client = client

    async def collect(self, options: BackupOptions) -> CollectedData:
        collected = CollectedData()

        for area in DOMAIN_AREAS:
            if not getattr(options, area.flag):
                continue
            for key in area.collections:
                collected.data[key] = await self.client.get(key, [])

        if options.include_settings:
            for group in SETTINGS_GROUPS:
                collected.settings[group] = await self.client.get(group, {})

        logger.debug(
            f"Collected {len(collected.data)} collections and {len(collected.settings)} settings groups"
        )
        return collected

    @staticmethod
    def data_types(options: BackupOptions) -> List[str]:
        """Ordered, de-duplicated labels of the areas ``options`` selects."""
        labels: List[str] = []
        for area in DOMAIN_AREAS:
            if not getattr(options, area.flag):
                continue
            for label in area.labels:
                if label not in labels:
                    labels.append(label)
        if options.include_settings:
            labels.append(SETTINGS_LABEL)
        return labels
