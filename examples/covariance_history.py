"""Covariance of a tracking campaign as a function of time.

Two ground stations take range measurements of a probe in straight-line
motion; the estimated parameters are initial position and velocity.
"""

import logging

import numpy as np

from odkit import (
    LinkEnds,
    LinkEndType,
    MeasurementCollection,
    ObservableType,
    ObservationBatch,
    PodInput,
    PodOutput,
    covariance_history_from_pod,
)

logging.basicConfig(level=logging.INFO)

HOUR = 3600.0
directions = {
    "Madrid": np.array([1.0, 0.2, 0.1]),
    "Canberra": np.array([0.1, -0.8, 0.6]),
}

measurements = MeasurementCollection()
rows = []
rng = np.random.default_rng(1)
for station, direction in directions.items():
    times = np.sort(rng.uniform(0.0, 24 * HOUR, size=40))
    link_ends = LinkEnds.from_mapping({LinkEndType.TRANSMITTER: ("Earth", station), LinkEndType.RECEIVER: "Probe"})
    measurements.add(ObservableType.ONE_WAY_RANGE, link_ends, ObservationBatch(np.zeros(times.size), times))

    unit = direction / np.linalg.norm(direction)
    rows.extend(np.concatenate([unit, epoch * unit]) for epoch in times)

information_matrix = np.array(rows)
factors = 1.0 / np.abs(information_matrix).max(axis=0)

pod_input = PodInput(measurements, number_of_parameters=6, inverse_apriori=np.eye(6) * 1e-6)
pod_output = PodOutput(
    normalized_information_matrix=information_matrix * factors,
    normalization_factors=factors,
    weights_diagonal=np.full(information_matrix.shape[0], 1.0 / 5.0 ** 2),
)

history = covariance_history_from_pod(pod_input, pod_output, output_time_step=2 * HOUR)

print(f"{'Epoch [h]':>10} {'N obs':>6} {'σx [m]':>10} {'σvx [m/s]':>10}")
for epoch, count, sigma in zip(history.epochs, history.observation_counts, history.sigmas()):
    print(f"{epoch / HOUR:10.2f} {count:6d} {sigma[0]:10.3f} {sigma[3]:10.5f}")
