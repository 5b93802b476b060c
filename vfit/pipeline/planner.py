import math
from vfit.domain.errors import InvalidInputError
from vfit.domain.models import BitratePlan


def plan_bitrates(duration_seconds: float, target_bytes: int,
                  audio_bitrate_bps: int, min_video_bitrate_bps: int) -> BitratePlan:
    """
    Splits the bits available in `target_bytes` over `duration_seconds`.

    Audio gets its fixed rate and video gets the rest, never less than
    `min_video_bitrate_bps`. When the budget can't even cover audio plus the
    minimum video rate the plan is marked `floor_limited`: the output will
    likely overshoot the target and callers should warn (or refuse).
    """
    if not math.isfinite(duration_seconds) or duration_seconds <= 0:
        raise InvalidInputError(f"Duration must be positive, got {duration_seconds}")

    total_bits = target_bytes * 8
    max_combined = total_bits / duration_seconds

    if max_combined <= audio_bitrate_bps + min_video_bitrate_bps:
        video_bps = float(min_video_bitrate_bps)
        floor_limited = True
    else:
        video_bps = max(max_combined - audio_bitrate_bps, float(min_video_bitrate_bps))
        floor_limited = False

    return BitratePlan(
        video_bitrate_bps=video_bps,
        audio_bitrate_bps=audio_bitrate_bps,
        buffer_size_bps=2 * video_bps,
        floor_limited=floor_limited,
    )
