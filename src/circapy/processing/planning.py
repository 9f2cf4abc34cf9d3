"""Chronotherapy plans derived from processed sessions."""

import math
from typing import Sequence

import numpy as np
import pydantic

from circapy.core import config
from circapy.io.writers import writers
from circapy.processing import phase_response

logger = config.get_logger()

SESSION_SHIFT_THRESHOLD_HOURS = 0.25
HISTORY_SHIFT_THRESHOLD_HOURS = 0.5
HIGH_SUPPRESSION = 0.2


class ChronoPlan(pydantic.BaseModel):
    """A chronotherapy plan in human readable form.

    Attributes:
        title: Short title, e.g. 'Advance your sleep phase'.
        description: The goal of the plan and what it is based on.
        morning_light_block: Morning bright light recommendation.
        evening_dim_block: Evening dim light recommendation.
        ideal_bedtime: Suggested bedtime.
        screen_guidance: Screen use guidance.
        recovery_timeline: Rough timeline for the clock to realign.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    title: str
    description: str
    morning_light_block: str
    evening_dim_block: str
    ideal_bedtime: str
    screen_guidance: str
    recovery_timeline: str


INSUFFICIENT_HISTORY_PLAN = ChronoPlan(
    title="Not enough data",
    description=(
        "Record several sessions across different days to generate a multi-day "
        "chronotherapy plan."
    ),
    morning_light_block=(
        "Aim for 20 to 30 minutes of bright light in the first 2 hours after waking."
    ),
    evening_dim_block="Keep light dim and warm in the 2 to 3 hours before bedtime.",
    ideal_bedtime="Keep a consistent bedtime and wake time.",
    screen_guidance=(
        "Avoid bright screens in bed and finish stimulating content at least 1 hour "
        "before sleep."
    ),
    recovery_timeline=(
        "Once more sessions are recorded, the number of days needed for "
        "realignment can be estimated."
    ),
)


def generate_plan(results: writers.ProcessingResults) -> ChronoPlan:
    """Build a plan from the results of a single session.

    The plan depends on the predicted suppression, the net phase shift and the
    hour of day the session started at.

    Args:
        results: The processed session.

    Returns:
        The plan.
    """
    suppression = results.suppression
    shift = results.phase_shift
    start = results.started_at or results.time[0]
    hour = start.hour

    logger.debug(
        "Planning from session %s: suppression %.3f, shift %.3f h, start hour %s",
        results.session_id,
        suppression,
        shift,
        hour,
    )
    return ChronoPlan(
        title=_session_title(shift, hour),
        description=_session_description(suppression, shift, hour),
        morning_light_block=_morning_light_block(shift),
        evening_dim_block=_evening_dim_block(suppression, hour),
        ideal_bedtime=_ideal_bedtime(shift, hour),
        screen_guidance=_screen_guidance(suppression, hour),
        recovery_timeline=_session_recovery_timeline(shift),
    )


def plan_from_history(history: Sequence[writers.ProcessingResults]) -> ChronoPlan:
    """Build a multi-day plan from results in chronological order.

    The phase shifts of all sessions are accumulated into one clock offset.

    Args:
        history: The processed sessions, oldest first.

    Returns:
        The plan, or a placeholder plan when the history is empty.
    """
    if not history:
        logger.info("No sessions to plan from.")
        return INSUFFICIENT_HISTORY_PLAN

    state = phase_response.ClockState()
    for results in history:
        state = state.apply_shift(results.phase_shift)
    net_shift = state.phase_offset_hours
    logger.debug(
        "Clock offset after %s sessions: %.3f h", len(history), net_shift
    )

    if net_shift > HISTORY_SHIFT_THRESHOLD_HOURS:
        title = "Advance your circadian phase over several days"
    elif net_shift < -HISTORY_SHIFT_THRESHOLD_HOURS:
        title = "Correct a delayed circadian phase over several days"
    else:
        title = "Stabilize your circadian rhythm"

    abs_shift = abs(net_shift)
    if abs_shift < 0.5:
        recovery_timeline = (
            "With consistent light timing, you should stabilize within 3 to 5 days."
        )
    elif abs_shift < 1.5:
        recovery_timeline = (
            "Expect 5 to 10 days of consistent behavior to bring your clock closer "
            "to local time."
        )
    else:
        recovery_timeline = (
            "For larger shifts, plan on 10 to 14 days of structured light exposure "
            "and sleep timing."
        )

    return ChronoPlan(
        title=title,
        description=(
            "Based on your recent recordings, your internal clock appears to be "
            f"shifted by {round(net_shift * 60)} minutes relative to local time. "
            "This plan uses repeated morning light and evening dimming to gradually "
            "realign it."
        ),
        morning_light_block=(
            "For the next 7 to 10 days, get 30 to 45 minutes of bright light "
            "(at least 1,000 lux) within 1 to 2 hours of waking. Outdoor daylight "
            "works best."
        ),
        evening_dim_block=(
            "Each evening, create a dim light zone starting 2 to 3 hours before your "
            "target bedtime: use warm, low-intensity lighting and minimize overhead "
            "lights."
        ),
        ideal_bedtime=(
            "Choose a target bedtime and wake time that you can keep consistent for "
            "at least a week."
        ),
        screen_guidance=(
            "Stop using bright screens 1 to 2 hours before bed, or use strong "
            "blue-light filters or amber glasses."
        ),
        recovery_timeline=recovery_timeline,
    )


def _is_biological_night(hour: int) -> bool:
    return hour >= 19 or hour < 4


def _session_title(shift: float, hour: int) -> str:
    if shift > SESSION_SHIFT_THRESHOLD_HOURS:
        return "Advance your sleep phase"
    if shift < -SESSION_SHIFT_THRESHOLD_HOURS:
        return "Reduce late-night circadian delay"
    if _is_biological_night(hour):
        return "Protect your biological night"
    return "Maintain healthy circadian light exposure"


def _session_description(suppression: float, shift: float, hour: int) -> str:
    interpretation = phase_response.interpret_phase_shift(shift)
    parts = [
        f"This session produced an estimated {suppression * 100:.1f}% melatonin "
        "suppression"
    ]
    if interpretation.direction == "negligible":
        parts.append(" with minimal direct phase-shifting effect. ")
    else:
        direction = "earlier" if shift > 0 else "later"
        parts.append(
            f" and shifted your circadian phase about {interpretation.minutes} "
            f"minutes {direction}. "
        )

    if _is_biological_night(hour):
        parts.append(
            "Because this occurred during your biological evening or night, the "
            "focus is on reducing disruptive light before bed and strengthening "
            "your morning light signal."
        )
    elif hour < 11:
        parts.append(
            "Because this exposure occurred in the morning window, it can be used "
            "to gently advance your clock and anchor your day."
        )
    else:
        parts.append(
            "Daytime exposure is generally helpful; the main goal is to avoid "
            "strong circadian light at night and secure consistent morning light."
        )
    return "".join(parts)


def _morning_light_block(shift: float) -> str:
    if shift < -phase_response.NEGLIGIBLE_SHIFT_HOURS:
        return (
            "Aim for 30 to 45 minutes of bright light (at least 1,000 lux, outdoor "
            "light or a bright window) between 07:00 and 09:00 to counteract the "
            "delay."
        )
    if shift > phase_response.NEGLIGIBLE_SHIFT_HOURS:
        return (
            "Maintain 20 to 30 minutes of bright light (at least 1,000 lux) between "
            "07:00 and 09:00 to support an earlier sleep schedule."
        )
    return (
        "Target 20 to 30 minutes of bright light (at least 1,000 lux) in the first "
        "2 hours after waking to keep your circadian clock stable."
    )


def _evening_dim_block(suppression: float, hour: int) -> str:
    if hour >= 19 or hour < 1 or suppression > HIGH_SUPPRESSION:
        return (
            "Create a dim light zone: keep melanopic lux below 20 (very dim, warm "
            "light) starting 2 to 3 hours before your target bedtime."
        )
    return (
        "In the 2 hours before bed, prefer warm, low-intensity light and avoid "
        "bright overhead lighting."
    )


def _ideal_bedtime(shift: float, hour: int) -> str:
    """Bedtime estimated from the start hour, moved against the shift."""
    if hour < 18:
        target_hour = 23
    elif hour < 22:
        target_hour = (hour + 3) % 24
    else:
        target_hour = (hour + 1) % 24

    # At most one hour of correction.
    adjustment = float(np.clip(-shift, -1.0, 1.0))
    target_hour = math.floor(target_hour + adjustment + 0.5) % 24
    return f"Aim for a consistent bedtime around {target_hour:02d}:00 each night."


def _screen_guidance(suppression: float, hour: int) -> str:
    if _is_biological_night(hour):
        if suppression > HIGH_SUPPRESSION:
            return (
                "Avoid blue-rich screens (phones, laptops, TVs) in the 2 to 3 hours "
                "before bed. If you must use screens, enable strong blue-light "
                "filters or use amber glasses."
            )
        return (
            "Try to keep screens out of bed and finish stimulating content at least "
            "1 hour before sleep."
        )
    return (
        "Use screens freely in daytime, but avoid carrying heavy screen use into "
        "the late evening."
    )


def _session_recovery_timeline(shift: float) -> str:
    abs_shift = abs(shift)
    if abs_shift < phase_response.NEGLIGIBLE_SHIFT_HOURS:
        return (
            "With consistent light hygiene, your circadian rhythm should remain "
            "stable over the coming week."
        )
    if abs_shift < 0.5:
        return (
            "With the suggested plan, expect your internal clock to realign over "
            "3 to 5 days of consistent timing."
        )
    return (
        "Larger phase shifts typically require 5 to 10 days of consistent light "
        "timing and sleep schedule to fully stabilize."
    )
