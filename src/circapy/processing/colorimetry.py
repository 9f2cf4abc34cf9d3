"""Classify light sources from color samples with CIE 1931 colorimetry.

The chain is sRGB -> linear RGB -> XYZ -> xy chromaticity -> correlated color
temperature -> light type, with a confidence derived from the distance of the
chromaticity to the D65 white point.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from circapy.core import config, exceptions, models

logger = config.get_logger()

SRGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ]
)

CCT_EPICENTER = (0.3320, 0.1858)
CCT_RANGE = (2000.0, 20000.0)
CCT_DEFAULT = 4000.0
RELIABLE_CCT_RANGE = (2500.0, 10000.0)
DUV_SCALE = 0.1
UNRELIABLE_CCT_PENALTY = 0.8

# Upper D_uv bound and confidence of each band.
CONFIDENCE_BANDS = ((0.02, 0.95), (0.05, 0.80), (0.10, 0.60))
POOR_CONFIDENCE = 0.40


def gamma_decode(value: float) -> float:
    """Linearize one sRGB channel.

    Args:
        value: The gamma encoded channel in [0, 1]. Values outside are clamped.

    Returns:
        The linear channel value.
    """
    if value <= 0.0:
        return 0.0
    if value >= 1.0:
        return 1.0
    if value <= 0.04045:
        return value / 12.92
    return ((value + 0.055) / 1.055) ** 2.4


def gamma_encode(value: float) -> float:
    """Inverse of `gamma_decode`."""
    if value <= 0.0:
        return 0.0
    if value >= 1.0:
        return 1.0
    if value <= 0.0031308:
        return 12.92 * value
    return 1.055 * value ** (1 / 2.4) - 0.055


def linearize_rgb(srgb: models.RGB) -> models.RGB:
    """Apply sRGB gamma decoding to every channel."""
    return models.RGB(
        r=gamma_decode(srgb.r), g=gamma_decode(srgb.g), b=gamma_decode(srgb.b)
    )


def rgb_to_xyz(linear_rgb: models.RGB) -> models.XYZ:
    """Convert linear RGB to CIE XYZ with the sRGB (D65) primaries.

    Args:
        linear_rgb: The linearized color.

    Returns:
        The tristimulus values.

    Raises:
        InvalidColorSampleError: If a channel is non-finite or outside [0, 1].
    """
    if not linear_rgb.is_valid:
        raise exceptions.InvalidColorSampleError(f"Invalid RGB values: {linear_rgb}")
    x, y, z = SRGB_TO_XYZ @ linear_rgb.to_array()
    return models.XYZ(x=float(x), y=float(y), z=float(z))


def xyz_to_chromaticity(xyz: models.XYZ) -> models.Chromaticity:
    """Project tristimulus values onto the xy chromaticity plane.

    Args:
        xyz: The tristimulus values.

    Returns:
        The chromaticity. Black input maps to the D65 white point.

    Raises:
        InvalidColorSampleError: If the tristimulus values are invalid.
    """
    if not xyz.is_valid:
        raise exceptions.InvalidColorSampleError(f"Invalid XYZ values: {xyz}")

    total = xyz.x + xyz.y + xyz.z
    if total == 0 or not np.isfinite(total):
        return models.Chromaticity(*models.D65_WHITE_POINT)
    return models.Chromaticity(x=xyz.x / total, y=xyz.y / total)


def rgb_to_chromaticity(srgb: models.RGB) -> models.Chromaticity:
    """Full conversion from a gamma encoded sRGB sample to chromaticity."""
    return xyz_to_chromaticity(rgb_to_xyz(linearize_rgb(srgb)))


def correlated_color_temperature(xy: models.Chromaticity) -> float:
    """Correlated color temperature from a cubic fit around an epicenter.

    CCT = 449 n^3 + 3525 n^2 + 6823.3 n + 5520.33 with
    n = (x - 0.3320) / (y - 0.1858). The coefficients are McCamy's, while the
    denominator of n has the opposite sign of McCamy's (0.1858 - y).

    Args:
        xy: The chromaticity.

    Returns:
        The temperature in Kelvin, limited to [2000, 20000]. A degenerate
        denominator yields 4000 K.

    Raises:
        InvalidColorSampleError: If the chromaticity is outside the valid domain.

    References:
        McCamy, C. S. Correlated color temperature as an explicit function of
            chromaticity coordinates. Color Research & Application, 17(2),
            142-144 (1992).
    """
    if not xy.is_valid:
        raise exceptions.InvalidColorSampleError(f"Invalid xy coordinates: {xy}")

    denominator = xy.y - CCT_EPICENTER[1]
    if denominator == 0 or not np.isfinite(denominator):
        return CCT_DEFAULT

    n = (xy.x - CCT_EPICENTER[0]) / denominator
    if not np.isfinite(n):
        return CCT_DEFAULT

    cct = 449 * n**3 + 3525 * n**2 + 6823.3 * n + 5520.33
    return float(np.clip(cct, *CCT_RANGE))


def delta_uv(xy: models.Chromaticity) -> float:
    """Deviation of the chromaticity from white.

    This is the scaled xy distance from the D65 white point and is used as a
    stand-in for the distance from the Planckian locus.
    """
    return xy.distance_from_d65() * DUV_SCALE


def kelvin_to_light_type(kelvin: float) -> models.LightType:
    """Map a color temperature to a light type category."""
    if kelvin < 3000:
        return models.LightType.warm
    if kelvin < 4500:
        return models.LightType.neutral
    if kelvin < 6000:
        return models.LightType.cool
    return models.LightType.daylight


def classification_confidence(duv: float, kelvin: float) -> float:
    """Confidence of a color based classification.

    Args:
        duv: The deviation from white, see `delta_uv`.
        kelvin: The correlated color temperature.

    Returns:
        A confidence in [0, 1] that decreases with duv and is reduced further
        outside the reliable temperature range.
    """
    confidence = POOR_CONFIDENCE
    for upper_bound, band_confidence in CONFIDENCE_BANDS:
        if duv < upper_bound:
            confidence = band_confidence
            break

    if kelvin < RELIABLE_CCT_RANGE[0] or kelvin > RELIABLE_CCT_RANGE[1]:
        confidence *= UNRELIABLE_CCT_PENALTY

    return float(np.clip(confidence, 0.0, 1.0))


def classify_rgb(srgb: models.RGB) -> models.ClassificationResult:
    """Classify the light source of a gamma encoded sRGB sample.

    Args:
        srgb: The color sample.

    Returns:
        The classification with method tag 'cie_xy'.

    Raises:
        InvalidColorSampleError: If the sample or a derived value is invalid.
    """
    if not srgb.is_valid:
        raise exceptions.InvalidColorSampleError(f"Invalid RGB values: {srgb}")

    chromaticity = rgb_to_chromaticity(srgb)
    kelvin = correlated_color_temperature(chromaticity)
    duv = delta_uv(chromaticity)
    light_type = kelvin_to_light_type(kelvin)
    confidence = classification_confidence(duv, kelvin)

    logger.debug(
        "Color classification: %s, %.0fK, confidence %.2f",
        light_type.value,
        kelvin,
        confidence,
    )
    return models.ClassificationResult(
        light_type=light_type,
        kelvin=kelvin,
        confidence=confidence,
        method="cie_xy",
        chromaticity=chromaticity,
        duv=duv,
    )


@dataclass(frozen=True)
class RGBExtractionResult:
    """Average color extracted from an image.

    Attributes:
        rgb: The extracted color.
        sample_count: Number of regions (or pixels) averaged.
        neutral_region_ratio: Share of regions classified as neutral.
    """

    rgb: models.RGB
    sample_count: int
    neutral_region_ratio: float


def extract_average_rgb(
    image: np.ndarray,
    sample_regions: int = 9,
    neutral_threshold: float = 0.15,
    margin: float = 0.1,
) -> RGBExtractionResult:
    """Average the color of an image, favouring neutral regions.

    The image is cropped by `margin` on every side and split into a square grid of
    regions. A region is neutral when its channels differ by less than
    `neutral_threshold`; neutral regions count twice in the average because they
    reflect the illuminant rather than surface colors.

    Args:
        image: Array of shape (height, width, 3 or 4). Integer images are scaled
            from [0, 255], float images are taken as [0, 1].
        sample_regions: Number of regions, rounded to a square grid.
        neutral_threshold: Maximum channel difference of a neutral region.
        margin: Fraction of the width and height skipped at each edge.

    Returns:
        The extraction result.

    Raises:
        InvalidColorSampleError: If the image is empty or not an RGB(A) image.
    """
    pixels = _normalize_image(image)
    height, width = pixels.shape[:2]

    margin_x = round(width * margin)
    margin_y = round(height * margin)
    grid_size = max(int(round(np.sqrt(sample_regions))), 1)
    region_width = (width - 2 * margin_x) // grid_size
    region_height = (height - 2 * margin_y) // grid_size

    region_means = []
    if region_width > 0 and region_height > 0:
        for i in range(grid_size):
            for j in range(grid_size):
                start_x = margin_x + i * region_width
                start_y = margin_y + j * region_height
                region = pixels[
                    start_y : start_y + region_height, start_x : start_x + region_width
                ]
                region_means.append(region.reshape(-1, 3).mean(axis=0))

    if not region_means:
        logger.debug("No regions sampled, using the center pixel.")
        center = pixels[height // 2, width // 2]
        return RGBExtractionResult(
            rgb=models.RGB(*(float(c) for c in center)),
            sample_count=1,
            neutral_region_ratio=0.0,
        )

    means = np.array(region_means)
    max_channel_difference = means.max(axis=1) - means.min(axis=1)
    neutral = max_channel_difference < neutral_threshold
    weights = np.where(neutral, 2.0, 1.0)
    average = (means * weights[:, None]).sum(axis=0) / weights.sum()

    logger.debug(
        "Extracted RGB %s from %s regions, %s neutral.",
        average,
        len(means),
        int(neutral.sum()),
    )
    return RGBExtractionResult(
        rgb=models.RGB(*(float(c) for c in average)),
        sample_count=len(means),
        neutral_region_ratio=float(neutral.mean()),
    )


def extract_region_rgb(
    image: np.ndarray, x: int, y: int, width: int, height: int
) -> RGBExtractionResult:
    """Average color of a rectangular region of an image.

    Args:
        image: Array of shape (height, width, 3 or 4).
        x: Left column of the region.
        y: Top row of the region.
        width: Width of the region in pixels.
        height: Height of the region in pixels.

    Returns:
        The extraction result, with the pixel count as sample count.

    Raises:
        InvalidColorSampleError: If the image is invalid or the region is empty.
    """
    pixels = _normalize_image(image)
    region = pixels[max(y, 0) : y + height, max(x, 0) : x + width]
    if region.size == 0:
        raise exceptions.InvalidColorSampleError("No pixels in region.")

    average = region.reshape(-1, 3).mean(axis=0)
    return RGBExtractionResult(
        rgb=models.RGB(*(float(c) for c in average)),
        sample_count=region.shape[0] * region.shape[1],
        neutral_region_ratio=0.0,
    )


def _normalize_image(image: np.ndarray) -> np.ndarray:
    """Validate an image and scale it to float RGB in [0, 1]."""
    pixels = np.asarray(image)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4) or pixels.size == 0:
        raise exceptions.InvalidColorSampleError(
            "Image must be a non-empty array of shape (height, width, 3 or 4)."
        )
    pixels = pixels[:, :, :3]
    if np.issubdtype(pixels.dtype, np.integer):
        return pixels.astype(float) / 255.0
    return np.clip(pixels.astype(float), 0.0, 1.0)


def classify_image(
    image: np.ndarray, neutral_threshold: Optional[float] = None
) -> models.ClassificationResult:
    """Extract the average color of an image and classify it."""
    if neutral_threshold is None:
        extraction = extract_average_rgb(image)
    else:
        extraction = extract_average_rgb(image, neutral_threshold=neutral_threshold)
    return classify_rgb(extraction.rgb)
