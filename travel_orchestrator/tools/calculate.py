"""
Calculation tool for travel planning arithmetic.

Supports plain arithmetic, day counts between dates, duration sums and
currency multiplication, plus two travel helpers (budget split and travel
time). Arithmetic is evaluated over a restricted AST, never with ``eval``.
"""

import ast
import operator
import re
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field

from travel_orchestrator.tools.base import Tool

CalculationKind = Literal["numeric", "date", "duration", "currency"]

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPERATORS = {ast.UAdd: operator.pos, ast.USub: operator.neg}

_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
_HOURS_PATTERN = re.compile(r"(\d+)\s*hours?", re.IGNORECASE)
_MINUTES_PATTERN = re.compile(r"(\d+)\s*minutes?", re.IGNORECASE)
_AMOUNT_PATTERN = re.compile(r"\$?(\d+(?:\.\d+)?)")
_MULTIPLIER_PATTERN = re.compile(r"\*\s*(\d+(?:\.\d+)?)")


class CalculationResult(BaseModel):
    expression: str
    result: float | int | str
    kind: CalculationKind
    unit: str | None = None
    breakdown: dict[str, Any] = Field(default_factory=dict)


def safe_eval(expression: str) -> float:
    """
    Evaluate an arithmetic expression.

    Only numeric literals, parentheses and ``+ - * / // % **`` are allowed.

    Raises:
        ValueError: If the expression is malformed or uses anything else
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid calculation: {expression}") from e

    def evaluate(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return evaluate(node.body)
        if isinstance(node, ast.Constant) and type(node.value) in (int, float):
            return node.value
        if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
            if isinstance(node.op, ast.Pow):
                exponent = evaluate(node.right)
                if abs(exponent) > 100:
                    raise ValueError("Exponent too large")
                return operator.pow(evaluate(node.left), exponent)
            return _BINARY_OPERATORS[type(node.op)](
                evaluate(node.left), evaluate(node.right)
            )
        if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
            return _UNARY_OPERATORS[type(node.op)](evaluate(node.operand))
        raise ValueError(f"Unsupported element in calculation: {expression}")

    try:
        return evaluate(tree)
    except ZeroDivisionError as e:
        raise ValueError(f"Division by zero in calculation: {expression}") from e


class CalculateTool(Tool):
    """Arithmetic for budgets, dates and durations."""

    name = "calculate"
    description = "Evaluate numeric, date, duration and currency calculations"

    async def run(self, expression: str, kind: CalculationKind = "numeric") -> dict[str, Any]:
        return self.calculate(expression, kind).model_dump()

    def calculate(
        self, expression: str, kind: CalculationKind = "numeric"
    ) -> CalculationResult:
        """
        Dispatch a calculation by kind.

        Raises:
            ValueError: For unsupported kinds or expressions that cannot be
                evaluated
        """
        handlers = {
            "numeric": self._numeric,
            "date": self._date,
            "duration": self._duration,
            "currency": self._currency,
        }
        if kind not in handlers:
            raise ValueError(f"Unsupported calculation type: {kind}")
        return handlers[kind](expression)

    def _numeric(self, expression: str) -> CalculationResult:
        return CalculationResult(
            expression=expression,
            result=round(safe_eval(expression), 2),
            kind="numeric",
        )

    def _date(self, expression: str) -> CalculationResult:
        # "days between 2024-01-01 and 2024-01-10"
        found = _DATE_PATTERN.findall(expression)
        if len(found) < 2:
            raise ValueError("Need at least 2 dates for date calculation")
        start, end = date.fromisoformat(found[0]), date.fromisoformat(found[1])
        days = abs((end - start).days)
        return CalculationResult(
            expression=expression,
            result=days,
            kind="date",
            unit="days",
            breakdown={"start_date": found[0], "end_date": found[1], "days": days},
        )

    def _duration(self, expression: str) -> CalculationResult:
        # "3 hours + 45 minutes"
        hours = sum(int(match) for match in _HOURS_PATTERN.findall(expression))
        minutes = sum(int(match) for match in _MINUTES_PATTERN.findall(expression))
        total_minutes = hours * 60 + minutes
        whole_hours, remaining = divmod(total_minutes, 60)
        return CalculationResult(
            expression=expression,
            result=f"{whole_hours}h {remaining}m",
            kind="duration",
            unit="time",
            breakdown={
                "total_minutes": total_minutes,
                "hours": whole_hours,
                "minutes": remaining,
            },
        )

    def _currency(self, expression: str) -> CalculationResult:
        # "$150 * 7 days"
        amount_match = _AMOUNT_PATTERN.search(expression)
        if not amount_match:
            raise ValueError("No currency amount found")
        amount = float(amount_match.group(1))
        multiplier_match = _MULTIPLIER_PATTERN.search(expression, amount_match.end())
        multiplier = float(multiplier_match.group(1)) if multiplier_match else 1.0
        total = round(amount * multiplier, 2)
        return CalculationResult(
            expression=expression,
            result=total,
            kind="currency",
            unit="USD",
            breakdown={"base_amount": amount, "multiplier": multiplier, "total": total},
        )

    def travel_budget(
        self, daily_budget: float, days: int, categories: dict[str, float]
    ) -> CalculationResult:
        """
        Split a trip budget into categories.

        Args:
            daily_budget: Spend per day
            days: Trip length in days
            categories: Category name to fraction of the budget (0.35 = 35%)
        """
        total = daily_budget * days
        split = {
            category: {
                "daily": round(daily_budget * share, 2),
                "total": round(total * share, 2),
                "percentage": round(share * 100),
            }
            for category, share in categories.items()
        }
        return CalculationResult(
            expression=f"{daily_budget} * {days} days",
            result=total,
            kind="currency",
            unit="USD",
            breakdown={
                "daily_budget": daily_budget,
                "days": days,
                "total": total,
                "categories": split,
            },
        )

    def travel_time(
        self, distance: float, speed: float, unit: Literal["km", "miles"] = "km"
    ) -> CalculationResult:
        """Time needed to cover ``distance`` at ``speed``, as ``"Xh Ym"``."""
        if speed <= 0:
            raise ValueError("Speed must be positive")
        hours_float = distance / speed
        hours = int(hours_float)
        minutes = round((hours_float - hours) * 60)
        if minutes == 60:
            hours, minutes = hours + 1, 0
        return CalculationResult(
            expression=f"{distance} {unit} / {speed} {unit}/h",
            result=f"{hours}h {minutes}m",
            kind="duration",
            unit="time",
            breakdown={
                "distance": distance,
                "speed": speed,
                "time_in_hours": round(hours_float, 2),
                "hours": hours,
                "minutes": minutes,
            },
        )
