#!/usr/bin/env python3
"""
Basic usage example of the speed fusion system.

This example replays a simulated ride through the public API without
any platform sensor bindings.
"""

import sys
import os
import numpy as np

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cycle_fusion import (
    Config,
    FusedEstimate,
    FusionCombiner,
    GeoSample,
    InertialSample,
    ReplayMotionSource,
    ReplayPositionSource,
)

def simulate_ride(duration=120, dt_ms=20, seed=7):
    """
    Simulate a cyclist riding straight north with a slow speed-up.

    Args:
        duration: Simulation duration in seconds
        dt_ms: Inertial sample period in milliseconds
        seed: Random seed

    Yields:
        (inertial_sample, geo_sample or None) tuples
    """
    rng = np.random.default_rng(seed)

    # Starting position (Amsterdam)
    start_lat = 52.3676
    start_lon = 4.9041
    earth_radius = 6371000  # meters

    # Noise parameters
    accel_noise = 0.05   # m/s²
    gps_noise = 0.00002  # degrees (~2m)

    distance = 0.0
    speed = 0.0
    idle_ms = 3000  # Stand still while the phone calibrates

    for t_ms in range(0, duration * 1000, dt_ms):
        riding = t_ms >= idle_ms
        if riding:
            speed = min(8.0, speed + 0.5 * dt_ms / 1000.0)
            distance += speed * dt_ms / 1000.0

        if riding:
            # Pedaling: vertical bounce and forward push
            phase = 2 * np.pi * 1.4 * t_ms / 1000.0
            accel = (0.5, 9.81 * 0.35 + 1.5 * np.sin(phase), 1.8 + 0.4 * np.cos(phase))
        else:
            accel = (0.0, 0.0, 9.81)

        inertial = InertialSample(
            accel_x=accel[0] + rng.normal(0, accel_noise),
            accel_y=accel[1] + rng.normal(0, accel_noise),
            accel_z=accel[2] + rng.normal(0, accel_noise),
            timestamp_ms=t_ms
        )

        # GPS updates at 1 Hz
        fix = None
        if t_ms % 1000 == 0:
            lat = start_lat + np.degrees(distance / earth_radius)
            fix = GeoSample(
                latitude=lat + rng.normal(0, gps_noise),
                longitude=start_lon + rng.normal(0, gps_noise),
                speed=max(0.0, speed + rng.normal(0, 0.3)) if riding else 0.0,
                accuracy=6.0,
                timestamp_ms=t_ms
            )

        yield inertial, fix

def main():
    """Main example function."""
    print("Speed Fusion - Basic Usage Example")
    print("=" * 50)

    config = Config()
    config.configure_logging()

    position_source = ReplayPositionSource()
    motion_source = ReplayMotionSource()
    combiner = FusionCombiner(position_source, motion_source, config)

    published = []
    combiner.add_listener(published.append)

    combiner.start()
    print("Starting simulation (straight ride, 120 seconds)...")

    for inertial, fix in simulate_ride():
        motion_source.emit(inertial)
        if fix is not None:
            position_source.emit(fix)
            if fix.timestamp_ms % 10000 == 0:
                print_status(combiner.estimate, fix.timestamp_ms)

    combiner.stop()
    print("\nSimulation completed!")

    # Final statistics
    stats = combiner.statistics
    print("\n=== Final Statistics ===")
    print(f"Published estimates: {len(published)}")
    print(f"Accepted/rejected fixes: {stats.accepted_fixes}/{stats.rejected_fixes}")
    print(f"Distance: {stats.total_distance_m:.0f} m")
    print(f"Max speed: {stats.max_speed * 3.6:.1f} km/h")
    print(f"Average speed: {stats.average_speed * 3.6:.1f} km/h")

def print_status(estimate: FusedEstimate, timestamp_ms: int):
    """Print current fused estimate."""
    heading = f"{estimate.heading:6.1f}°" if estimate.heading is not None else "   n/a"

    print(f"Time: {timestamp_ms / 1000:.1f}s")
    print(f"  Speed:    {estimate.speed_kmh:5.1f} km/h (smoothed {estimate.smoothed_speed_kmh:5.1f} km/h)")
    print(f"  Heading:  {heading}")
    print(f"  Accel:    {estimate.acceleration:5.2f} m/s²")
    print(f"  Moving: {estimate.is_moving}, confidence: {estimate.confidence}")
    print()

if __name__ == "__main__":
    main()
