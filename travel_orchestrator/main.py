"""
Main entry point for the Travel Orchestrator.

Provides a CLI that plans a trip either inline or through the background
job queue and prints or saves the resulting plan.
"""

import argparse
import asyncio
import json
import sys
import traceback
from typing import Any

from travel_orchestrator.config import TravelOrchestratorConfig, initialize_config
from travel_orchestrator.data.models import PlanResult, validate_preferences
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.services.cache_service import (
    close_cache_store,
    get_cache_store,
)
from travel_orchestrator.services.job_queue import JobQueue
from travel_orchestrator.services.plan_service import PlanningService
from travel_orchestrator.utils.error_handling import (
    TravelOrchestratorError,
    ValidationError,
)
from travel_orchestrator.utils.logging import get_logger, setup_logging
from travel_orchestrator.utils.rate_limiting import initialize_rate_limiting

logger = get_logger(__name__)


def setup_argparse() -> argparse.ArgumentParser:
    """
    Set up the argument parser for the CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="Multi-stage travel planning powered by Google Gemini"
    )

    system_group = parser.add_argument_group("System Configuration")
    system_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level",
    )
    system_group.add_argument(
        "--log-file",
        type=str,
        help="Path to write log file (optional)",
    )
    system_group.add_argument(
        "--config",
        type=str,
        help="Path to a custom .env file",
    )
    system_group.add_argument(
        "--disable-rate-limits",
        action="store_true",
        help="Disable API rate limiting (use with caution)",
    )

    trip_group = parser.add_argument_group("Trip")
    trip_group.add_argument("--destination", type=str, help="Region or city to visit")
    trip_group.add_argument("--coming-from", type=str, help="Origin city")
    trip_group.add_argument("--start-date", type=str, help="Start date (YYYY-MM-DD)")
    trip_group.add_argument("--end-date", type=str, help="End date (YYYY-MM-DD)")
    trip_group.add_argument(
        "--budget",
        type=str,
        default="moderate",
        help="Budget level (budget, moderate, luxury)",
    )
    trip_group.add_argument("--travelers", type=str, default="1", help="Travelers")
    trip_group.add_argument(
        "--interests",
        type=str,
        default="culture, food",
        help="Comma-separated interests",
    )
    trip_group.add_argument(
        "--preferences-file",
        type=str,
        help="Path to a JSON file with trip preferences",
    )

    run_group = parser.add_argument_group("Execution")
    run_group.add_argument(
        "--background",
        action="store_true",
        help="Submit the trip as a background job and wait for it",
    )
    run_group.add_argument(
        "--owner",
        type=str,
        default="cli",
        help="Owner id recorded in the job history",
    )
    run_group.add_argument(
        "--save-to",
        type=str,
        help="Save the plan as JSON to the given path",
    )

    return parser


def _load_preferences(args: argparse.Namespace) -> dict[str, Any]:
    if args.preferences_file:
        with open(args.preferences_file, encoding="utf-8") as f:
            return json.load(f)
    return {
        "destination": args.destination,
        "comingFrom": args.coming_from,
        "startDate": args.start_date,
        "endDate": args.end_date,
        "budget": args.budget,
        "travelers": args.travelers,
        "interests": args.interests,
    }


def display_plan(plan: PlanResult) -> None:
    """
    Display a plan in a readable format.

    Args:
        plan: The plan to display
    """
    itinerary = plan.itinerary
    print(f"\n=== Travel Plan: {itinerary.destination} ===\n")

    if plan.recommendations:
        print("Other cities considered:")
        for rec in plan.recommendations:
            print(f"  - {rec.city} ({rec.rating:.1f}): {rec.best_for}")
        print()

    if itinerary.local_insights:
        print("Local insights:")
        for insight in itinerary.local_insights:
            print(f"  - [{insight.type.value}] {insight.name}: {insight.description}")
        print()

    for day in itinerary.schedule:
        print(f"Day {day.day} ({day.date}): {day.title}")
        for activity in day.activities:
            print(f"     {activity.time}  {activity.activity}")
        print()

    if itinerary.budget:
        print(f"Total budget: {itinerary.budget.amount} {itinerary.budget.currency}")

    summary = plan.orchestration
    print(
        f"\n{summary.steps} step(s), {summary.tool_calls} tool call(s), "
        f"{summary.execution_time_ms}ms"
    )


async def run_inline(preferences: dict[str, Any]) -> PlanResult:
    service = PlanningService(orchestrator=Orchestrator(), cache=get_cache_store())
    return await service.plan_trip(preferences)


async def run_background(preferences: dict[str, Any], owner: str) -> PlanResult:
    """Submit a job, drain the queue and return the stored plan."""
    queue = JobQueue(orchestrator=Orchestrator(), cache=get_cache_store())
    queue.start()
    try:
        job_id = await queue.create_job(owner, preferences)
        print(f"Submitted job {job_id}")
        await queue.join()
    finally:
        await queue.stop()

    record = await queue.get_job_status(job_id)
    if record is None or record.result is None:
        error = record.error if record else "job record expired"
        raise TravelOrchestratorError(f"Job {job_id} failed: {error}")
    return PlanResult.model_validate(record.result)


async def main() -> int:
    """
    Main entry point function.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        args = setup_argparse().parse_args()
        setup_logging(log_level=args.log_level or "INFO", log_file=args.log_file)

        system_config = initialize_config(
            custom_config_path=args.config, validate=True, raise_on_error=False
        )
        setup_logging(
            log_level=args.log_level or system_config.system.log_level,
            log_file=args.log_file,
        )
        if args.disable_rate_limits:
            logger.warning(
                "API rate limiting is disabled. This may cause API quota issues."
            )
        else:
            initialize_rate_limiting()

        preferences = validate_preferences(_load_preferences(args)).to_wire()
        if args.background:
            plan = await run_background(preferences, args.owner)
        else:
            plan = await run_inline(preferences)

        display_plan(plan)
        if args.save_to:
            with open(args.save_to, "w", encoding="utf-8") as f:
                json.dump(plan.model_dump(mode="json"), f, indent=2)
            print(f"\nPlan saved to {args.save_to}")
        return 0

    except ValidationError as e:
        print(f"\nInvalid trip preferences: {e!s}")
        if e.missing_fields:
            print(f"Missing fields: {', '.join(e.missing_fields)}")
        return 2
    except TravelOrchestratorConfig.ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"\nConfiguration Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Planning interrupted by user")
        return 0
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        print(f"\nError: {e}")
        return 1
    except Exception as e:
        logger.error(f"Error in main function: {e!s}\n{traceback.format_exc()}")
        print(f"\nError: {e!s}")
        return 1
    finally:
        await close_cache_store()


def cli() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
