"""
Commission schedule configuration.

Fixed per-level amounts, loaded from settings into an immutable value
object so engines and tests receive the schedule explicitly.
"""

from dataclasses import dataclass

from app.config.constants import ABSOLUTE_MAX_LEVEL
from app.config.settings import Settings, settings
from app.models.enums import CommissionKind


@dataclass(frozen=True)
class CommissionSchedule:
    """
    Per-level commission amounts.

    Level 1 pays a base and a bonus row; levels 2..max_level pay one
    fixed row each.
    """

    max_level: int = ABSOLUTE_MAX_LEVEL
    level1_base: int = 75_000
    level1_bonus: int = 12_500
    level_n_fixed: int = 12_500
    required_product_amount: int = 500_000

    def __post_init__(self) -> None:
        if not 1 <= self.max_level <= ABSOLUTE_MAX_LEVEL:
            raise ValueError(
                f"max_level must be within 1..{ABSOLUTE_MAX_LEVEL}, "
                f"got {self.max_level}"
            )
        for name in (
            "level1_base",
            "level1_bonus",
            "level_n_fixed",
            "required_product_amount",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "CommissionSchedule":
        """Build schedule from application settings."""
        return cls(
            max_level=config.commission_max_level,
            level1_base=config.commission_level1_base,
            level1_bonus=config.commission_level1_bonus,
            level_n_fixed=config.commission_level_n_fixed,
            required_product_amount=config.commission_required_product_amount,
        )

    def rows_for_level(self, level: int) -> list[tuple[CommissionKind, int]]:
        """
        Rows one purchase creates for a beneficiary at a level.

        Args:
            level: Upline level (1-based)

        Returns:
            List of (kind, amount), empty above max_level
        """
        if level < 1 or level > self.max_level:
            return []
        if level == 1:
            return [
                (CommissionKind.BASE, self.level1_base),
                (CommissionKind.BONUS, self.level1_bonus),
            ]
        return [(CommissionKind.LEVEL, self.level_n_fixed)]

    def level_total(self, level: int) -> int:
        """Total amount a beneficiary earns at a level per unit."""
        return sum(amount for _, amount in self.rows_for_level(level))
