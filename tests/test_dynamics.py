"""Unit tests for dynamics module - state, quaternions, rigid body mechanics.

These tests verify the fundamental mechanics the flight controllers build on.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from spacecraft.dynamics.rigid_body import G0, BodyConfig, RigidBody
from spacecraft.dynamics.state import (
    BODY_FORWARD,
    BODY_RIGHT,
    BODY_UP,
    IDENTITY_QUATERNION,
    State,
    angle_between,
    normalize_quaternion,
    normalize_vector,
    quaternion_angle,
    quaternion_conjugate,
    quaternion_from_axis_angle,
    quaternion_multiply,
    quaternion_slerp,
    quaternion_to_dcm,
)


def make_body(mass: float = 1000.0, config: BodyConfig | None = None) -> RigidBody:
    return RigidBody(State.at_rest(mass_kg=mass), config)


# =============================================================================
# Quaternion Tests
# =============================================================================

class TestQuaternionOperations:
    """Test quaternion math operations."""

    def test_normalize_unit_length(self):
        """Normalized quaternion should have unit length."""
        q = normalize_quaternion(np.array([1.0, 2.0, 3.0, 4.0]))
        assert_allclose(np.linalg.norm(q), 1.0, atol=1e-12)

    def test_normalize_zero_gives_identity(self):
        """A zero quaternion has no attitude; identity is returned."""
        assert_allclose(normalize_quaternion(np.zeros(4)), IDENTITY_QUATERNION)

    def test_multiply_by_conjugate_is_identity(self):
        """Quaternion times its conjugate should give identity."""
        q = normalize_quaternion(np.array([1.0, 2.0, 3.0, 4.0]))
        result = quaternion_multiply(q, quaternion_conjugate(q))
        assert_allclose(result, IDENTITY_QUATERNION, atol=1e-12)

    def test_dcm_is_orthonormal(self):
        """DCM of any unit quaternion is a proper rotation."""
        dcm = quaternion_to_dcm(normalize_quaternion(np.array([0.2, 0.4, -0.1, 0.9])))
        assert_allclose(dcm @ dcm.T, np.eye(3), atol=1e-12)
        assert_allclose(np.linalg.det(dcm), 1.0, atol=1e-12)

    def test_axis_angle_about_up_turns_forward_left(self):
        """+90 deg about body up swings forward (-Z) onto -X."""
        q = quaternion_from_axis_angle(BODY_UP, np.pi / 2)
        assert_allclose(quaternion_to_dcm(q) @ BODY_FORWARD, [-1.0, 0.0, 0.0], atol=1e-12)

    def test_axis_angle_zero_axis_is_identity(self):
        """Rotation about a zero-length axis is no rotation."""
        q = quaternion_from_axis_angle(np.zeros(3), 1.0)
        assert_allclose(q, IDENTITY_QUATERNION)

    def test_product_applies_right_operand_first(self):
        """q1 * q2 rotates by q2, then by q1."""
        yaw = quaternion_from_axis_angle(BODY_UP, np.pi / 2)
        pitch = quaternion_from_axis_angle(BODY_RIGHT, np.pi / 2)

        # Pitch -Z up to +Y, then a rotation about Y leaves it there
        combined = quaternion_multiply(yaw, pitch)
        assert_allclose(quaternion_to_dcm(combined) @ BODY_FORWARD, [0.0, 1.0, 0.0], atol=1e-12)

    def test_quaternion_angle_ignores_sign(self):
        """q and -q are the same attitude."""
        q = quaternion_from_axis_angle(BODY_RIGHT, 0.7)
        assert_allclose(quaternion_angle(q, -q), 0.0, atol=1e-6)
        assert_allclose(quaternion_angle(IDENTITY_QUATERNION, q), 0.7, atol=1e-9)

    def test_slerp_midpoint(self):
        """Slerp at t=0.5 lies halfway along the rotation."""
        q = quaternion_from_axis_angle(BODY_UP, np.pi / 2)
        mid = quaternion_slerp(IDENTITY_QUATERNION, q, 0.5)
        assert_allclose(quaternion_angle(IDENTITY_QUATERNION, mid), np.pi / 4, atol=1e-9)

    def test_slerp_endpoints(self):
        """Slerp returns its endpoints at t=0 and t=1."""
        q = quaternion_from_axis_angle(BODY_RIGHT, 2.0)
        assert_allclose(quaternion_angle(quaternion_slerp(IDENTITY_QUATERNION, q, 0.0), IDENTITY_QUATERNION), 0.0, atol=1e-6)
        assert_allclose(quaternion_angle(quaternion_slerp(IDENTITY_QUATERNION, q, 1.0), q), 0.0, atol=1e-6)

    def test_slerp_takes_short_path(self):
        """Slerp toward -q must not spin the long way round."""
        q = quaternion_from_axis_angle(BODY_UP, 0.4)
        mid = quaternion_slerp(q, -q, 0.5)
        assert_allclose(quaternion_angle(q, mid), 0.0, atol=1e-6)


class TestVectorUtilities:
    """Test vector helpers."""

    def test_angle_between_opposite(self):
        """Opposite vectors are pi apart."""
        assert_allclose(angle_between(BODY_FORWARD, -BODY_FORWARD), np.pi)

    def test_angle_between_perpendicular(self):
        assert_allclose(angle_between(BODY_RIGHT, BODY_UP), np.pi / 2)

    def test_normalize_zero_vector(self):
        """Zero vectors stay zero instead of producing NaN."""
        assert_allclose(normalize_vector(np.zeros(3)), np.zeros(3))


# =============================================================================
# State Tests
# =============================================================================

class TestState:
    """Test State dataclass."""

    def test_at_rest(self):
        """Resting state has zero velocity and identity attitude."""
        state = State.at_rest(mass_kg=5000.0)

        assert_allclose(state.velocity, np.zeros(3))
        assert_allclose(state.quaternion, IDENTITY_QUATERNION)
        assert state.mass == 5000.0
        assert state.time == 0.0

    def test_body_axes_at_identity(self):
        """Identity attitude faces -Z with +X right and +Y up."""
        state = State.at_rest(mass_kg=1.0)

        assert_allclose(state.forward, [0.0, 0.0, -1.0])
        assert_allclose(state.right, [1.0, 0.0, 0.0])
        assert_allclose(state.up, [0.0, 1.0, 0.0])

    def test_quaternion_normalized_on_creation(self):
        """State should normalize its quaternion."""
        state = State(
            position=np.zeros(3),
            velocity=np.zeros(3),
            quaternion=np.array([2.0, 0.0, 0.0, 0.0]),
            angular_velocity=np.zeros(3),
            mass=1.0,
        )
        assert_allclose(state.quaternion, IDENTITY_QUATERNION)

    def test_rejects_non_positive_mass(self):
        """Zero mass is a construction error."""
        with pytest.raises(ValueError, match="Mass must be positive"):
            State.at_rest(mass_kg=0.0)

    def test_rejects_bad_shape(self):
        with pytest.raises(ValueError, match="Position must be shape"):
            State(
                position=np.zeros(2),
                velocity=np.zeros(3),
                quaternion=IDENTITY_QUATERNION.copy(),
                angular_velocity=np.zeros(3),
                mass=1.0,
            )

    def test_copy_is_independent(self):
        """Modifying a copy should not affect the original."""
        state = State.at_rest(mass_kg=1.0)
        clone = state.copy()
        clone.velocity[0] = 5.0
        assert state.velocity[0] == 0.0

    def test_velocity_body(self):
        """World velocity along forward reads as -Z in the body frame."""
        q = quaternion_from_axis_angle(BODY_UP, np.pi / 2)
        state = State.at_rest(mass_kg=1.0, quaternion=q)
        state.velocity = state.forward * 10.0
        assert_allclose(state.velocity_body(), [0.0, 0.0, -10.0], atol=1e-12)


# =============================================================================
# Rigid Body Tests
# =============================================================================

class TestRigidBodyForces:
    """Test force, torque and impulse application."""

    def test_world_force_integrates_to_velocity(self):
        """F = m * a over one step."""
        body = make_body(mass=1000.0)
        body.apply_force(np.array([2000.0, 0.0, 0.0]))
        body.integrate(0.5)

        assert_allclose(body.velocity, [1.0, 0.0, 0.0])
        # Semi-implicit Euler: new velocity moves position
        assert_allclose(body.position, [0.5, 0.0, 0.0])

    def test_local_force_follows_orientation(self):
        """A local forward force pushes along the rotated forward axis."""
        body = make_body(mass=1000.0)
        body.set_orientation(quaternion_from_axis_angle(BODY_UP, np.pi / 2))
        body.apply_local_force(np.array([0.0, 0.0, -1000.0]))
        body.integrate(1.0)

        assert_allclose(body.velocity, [-1.0, 0.0, 0.0], atol=1e-12)

    def test_forces_cleared_after_integration(self):
        """Accumulated forces act for one step only."""
        body = make_body(mass=1.0)
        body.apply_force(np.array([1.0, 0.0, 0.0]))
        body.integrate(1.0)
        body.integrate(1.0)

        assert_allclose(body.velocity, [1.0, 0.0, 0.0])

    def test_impulse_is_immediate(self):
        """Impulses change velocity without waiting for integration."""
        body = make_body(mass=500.0)
        body.apply_local_impulse(np.array([0.0, 1000.0, 0.0]))
        assert_allclose(body.velocity, [0.0, 2.0, 0.0])

    def test_angular_impulse(self):
        """Angular impulse divided by inertia gives angular velocity."""
        body = make_body()
        body.apply_angular_impulse(np.array([0.0, 2.0e4, 0.0]))
        assert_allclose(body.angular_velocity, [0.0, 1.0, 0.0])

    def test_torque_spins_body(self):
        """Torque integrates into angular velocity."""
        body = make_body()
        body.apply_local_torque(np.array([4.0e4, 0.0, 0.0]))
        body.integrate(0.5)
        assert_allclose(body.angular_velocity, [1.0, 0.0, 0.0])

    def test_angular_velocity_rotates_attitude(self):
        """Constant world-frame rate rotates the body by rate * dt."""
        body = make_body()
        body.set_angular_velocity(np.array([0.0, np.pi / 2, 0.0]))
        body.integrate(1.0)

        assert_allclose(body.forward, [-1.0, 0.0, 0.0], atol=1e-12)
        assert_allclose(np.linalg.norm(body.orientation), 1.0)

    def test_kinematic_body_ignores_forces(self):
        """Kinematic bodies keep controller-written velocity but still move."""
        body = make_body(config=BodyConfig(kinematic=True))
        body.set_linear_velocity(np.array([0.0, 0.0, -3.0]))
        body.apply_force(np.array([1.0e6, 0.0, 0.0]))
        body.integrate(2.0)

        assert_allclose(body.velocity, [0.0, 0.0, -3.0])
        assert_allclose(body.position, [0.0, 0.0, -6.0])

    def test_to_local_inverts_to_world(self):
        body = make_body()
        body.set_orientation(normalize_quaternion(np.array([0.9, 0.1, 0.3, -0.2])))
        v = np.array([1.0, -2.0, 3.0])
        assert_allclose(body.to_local(body.to_world(v)), v, atol=1e-12)


class TestImpulseQueue:
    """Test the deferred impulse queue."""

    def test_queue_waits_for_flush(self):
        """Queued impulses do not act until flushed."""
        body = make_body(mass=100.0)
        body.queue_impulse(np.array([100.0, 0.0, 0.0]))
        body.queue_impulse(np.array([100.0, 0.0, 0.0]))

        assert_allclose(body.velocity, np.zeros(3))
        assert_allclose(body.queued_impulse, [200.0, 0.0, 0.0])

    def test_flush_applies_sum_once(self):
        """Flushing applies the summed impulse exactly once."""
        body = make_body(mass=100.0)
        body.queue_impulse(np.array([100.0, 0.0, 0.0]))
        body.queue_impulse(np.array([0.0, 0.0, -100.0]), local=True)

        body.flush_impulses()
        body.flush_impulses()

        assert_allclose(body.velocity, [1.0, 0.0, -1.0])
        assert_allclose(body.queued_impulse, np.zeros(3))

    def test_begin_tick_flushes(self):
        body = make_body(mass=100.0)
        body.queue_impulse(np.array([0.0, 50.0, 0.0]))
        body.begin_tick(0.1)
        assert_allclose(body.velocity, [0.0, 0.5, 0.0])


class TestVelocityClamp:
    """Test velocity clamping and its change events."""

    def test_clamp_rescales(self):
        """Velocity above the limit is rescaled, direction kept."""
        body = make_body()
        body.set_linear_velocity(np.array([30.0, 40.0, 0.0]))

        assert body.clamp_velocity(5.0)
        assert_allclose(body.velocity, [3.0, 4.0, 0.0])

    def test_clamp_below_limit_untouched(self):
        body = make_body()
        body.set_linear_velocity(np.array([1.0, 0.0, 0.0]))

        assert not body.clamp_velocity(5.0)
        assert_allclose(body.velocity, [1.0, 0.0, 0.0])

    def test_event_fires_on_real_change(self):
        """Listeners hear about clamps that change velocity noticeably."""
        body = make_body()
        events = []
        body.velocity_listeners.append(events.append)
        body.set_linear_velocity(np.array([10.0, 0.0, 0.0]))

        body.clamp_velocity(5.0)

        assert len(events) == 1
        assert_allclose(events[0], [5.0, 0.0, 0.0])

    def test_event_suppressed_under_epsilon(self):
        """Sub-epsilon clamps still rescale but stay silent."""
        body = make_body()
        events = []
        body.velocity_listeners.append(events.append)
        body.set_linear_velocity(np.array([5.0005, 0.0, 0.0]))

        assert body.clamp_velocity(5.0)

        assert events == []
        assert_allclose(body.speed, 5.0)

    def test_config_max_speed_applied_on_integrate(self):
        body = make_body(mass=1.0, config=BodyConfig(max_speed=10.0))
        body.apply_force(np.array([100.0, 0.0, 0.0]))
        body.integrate(1.0)
        assert_allclose(body.speed, 10.0)


class TestOwnership:
    """Test single-controller ownership."""

    def test_second_owner_rejected(self):
        body = make_body()
        first, second = object(), object()
        body.claim(first)

        with pytest.raises(RuntimeError, match="already controlled"):
            body.claim(second)

    def test_release_allows_new_owner(self):
        body = make_body()
        first, second = object(), object()
        body.claim(first)
        body.release(first)
        body.claim(second)
        assert body.owner is second

    def test_release_by_stranger_is_ignored(self):
        body = make_body()
        owner = object()
        body.claim(owner)
        body.release(object())
        assert body.owner is owner

    def test_reclaim_by_same_owner(self):
        body = make_body()
        owner = object()
        body.claim(owner)
        body.claim(owner)
        assert body.owner is owner


class TestDerivedQuantities:
    """Test speed, energy, momentum and acceleration estimates."""

    def test_momentum_and_energy(self):
        body = make_body(mass=2.0)
        body.set_linear_velocity(np.array([3.0, 4.0, 0.0]))

        assert_allclose(body.speed, 5.0)
        assert_allclose(body.momentum, [6.0, 8.0, 0.0])
        assert_allclose(body.kinetic_energy, 25.0)

    def test_rotational_energy(self):
        """0.5 * w^T I w with the default isotropic inertia."""
        body = make_body()
        body.set_angular_velocity(np.array([1.0, 0.0, 0.0]))
        assert_allclose(body.rotational_energy, 1.0e4)

    def test_local_velocity(self):
        body = make_body()
        body.set_linear_velocity(np.array([0.0, 0.0, -7.0]))
        assert_allclose(body.local_velocity, [0.0, 0.0, -7.0])

    def test_acceleration_from_forces(self):
        """Finite difference over a tick matches F/m."""
        body = make_body(mass=10.0)
        body.apply_force(np.array([0.0, 50.0, 0.0]))
        body.integrate(0.1)

        assert_allclose(body.acceleration, [0.0, 5.0, 0.0])
        assert_allclose(body.g_force, 5.0 / G0)

    def test_acceleration_covers_override_writes(self):
        """Velocity written inside an open tick counts as acceleration."""
        body = make_body()
        body.begin_tick(0.1)
        body.set_linear_velocity(np.array([1.0, 0.0, 0.0]))
        body.integrate(0.1)

        assert_allclose(body.acceleration, [10.0, 0.0, 0.0])

    def test_acceleration_zero_before_first_tick(self):
        assert_allclose(make_body().acceleration, np.zeros(3))


class TestBodyConfig:
    """Test BodyConfig validation."""

    def test_rejects_indefinite_inertia(self):
        with pytest.raises(ValueError, match="positive definite"):
            BodyConfig(inertia=np.diag([1.0, -1.0, 1.0]))

    def test_rejects_bad_inertia_shape(self):
        with pytest.raises(ValueError, match="shape"):
            BodyConfig(inertia=np.ones(3))

    def test_rejects_non_positive_max_speed(self):
        with pytest.raises(ValueError, match="max_speed"):
            BodyConfig(max_speed=0.0)
