import decimal
import typing as t

import annotated_types as ant

from gradeflow.model import Priority

from .base import BaseSettings


class GradingSettings(BaseSettings):
    """Grading policy.

    `tolerance` is the largest absolute difference between two examiners'
    scores that still counts as agreement.
    """

    tolerance: t.Annotated[decimal.Decimal, ant.Ge(0)] = decimal.Decimal("1.0")
    examiners_per_block: t.Annotated[int, ant.Ge(1), ant.Le(2)] = 2
    default_priority: Priority = Priority.Medium
    third_round_priority: Priority = Priority.High
    page_size: t.Annotated[int, ant.Gt(0)] = 50
    max_page_size: t.Annotated[int, ant.Gt(0)] = 200
