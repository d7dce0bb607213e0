# Grid Features - Axis Tests
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for coordinate axes: boundaries, lookups and subsets.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gridfeatures.axis import NOT_FOUND, ReferenceableAxis, RegularAxis, TimeAxis, VerticalAxis
from gridfeatures.core import VerticalCrs
from gridfeatures.extent import Extent

DEPTH_CRS = VerticalCrs(units="m")


@pytest.fixture
def depth_axis():
    return VerticalAxis("depth", [10.0 * i for i in range(11)], DEPTH_CRS)


@pytest.fixture
def lon_axis():
    return RegularAxis("lon", -180.0, 10.0, 36, is_longitude=True)


class TestAxisConstruction:
    """Test axis validation and derived boundaries"""

    def test_bounds_are_midpoints(self, depth_axis):
        """Test midpoint boundaries extrapolated half a cell at the ends"""
        assert depth_axis.bounds[0] == pytest.approx(-5.0)
        assert depth_axis.bounds[1] == pytest.approx(5.0)
        assert depth_axis.bounds[-1] == pytest.approx(105.0)
        assert len(depth_axis.bounds) == depth_axis.size + 1

    def test_irregular_bounds(self):
        """Test boundaries of an irregular axis"""
        axis = ReferenceableAxis("z", [0.0, 10.0, 30.0])
        assert axis.bounds == (-5.0, 5.0, 20.0, 40.0)

    @pytest.mark.parametrize("values", [[0, 1, 1], [0, 2, 1], [3, 3]])
    def test_not_strictly_monotonic(self, values):
        """Test that repeated or zig-zag values are rejected"""
        with pytest.raises(ValueError, match="strictly monotonic"):
            ReferenceableAxis("bad", values)

    def test_empty_axis(self):
        """Test that an axis needs at least one value"""
        with pytest.raises(ValueError):
            ReferenceableAxis("empty", [])

    def test_explicit_bounds_length(self):
        """Test that explicit bounds must have one more entry than values"""
        with pytest.raises(ValueError, match="bounds"):
            ReferenceableAxis("z", [1.0, 2.0], bounds=[0.5, 1.5])

    def test_extents(self, depth_axis):
        """Test value extent versus coordinate extent"""
        assert depth_axis.extent == Extent(0.0, 100.0)
        assert depth_axis.coordinate_extent == Extent(-5.0, 105.0)

    def test_time_axis_requires_datetimes(self):
        """Test that a time axis rejects numbers"""
        with pytest.raises(ValueError, match="datetimes"):
            TimeAxis("time", [1.0, 2.0])

    def test_equality_includes_vertical_crs(self):
        """Test that depth axes with different CRS are not equal"""
        values = [0.0, 10.0]
        assert VerticalAxis("z", values, DEPTH_CRS) == VerticalAxis("z", values, DEPTH_CRS)
        assert VerticalAxis("z", values, DEPTH_CRS) != VerticalAxis(
            "z", values, VerticalCrs(units="m", is_positive_up=True)
        )

    def test_global_longitude(self, lon_axis):
        """Test detection of a full circle of longitude"""
        assert lon_axis.is_global_longitude
        assert not RegularAxis("lon", 0.0, 1.0, 10, is_longitude=True).is_global_longitude


class TestFindIndex:
    """Test binary-search index lookup and its tie-break rule"""

    @pytest.mark.parametrize("value, expected", [
        (0.0, 0),
        (10.0, 1),
        (14.9, 1),
        (85.8, 9),
        (100.0, 10),
    ])
    def test_values_inside(self, depth_axis, value, expected):
        """Test on-centre and between-centre values resolve to the containing cell"""
        assert depth_axis.find_index_of(value) == expected

    def test_interior_boundary_goes_to_lower_index(self, depth_axis):
        """Test that a value on a shared boundary belongs to the lower cell"""
        assert depth_axis.find_index_of(5.0) == 0
        assert depth_axis.find_index_of(95.0) == 9

    def test_outer_boundaries_inclusive(self, depth_axis):
        """Test the first and last boundaries resolve"""
        assert depth_axis.find_index_of(-5.0) == 0
        assert depth_axis.find_index_of(105.0) == 10
        assert depth_axis.contains(-5.0)
        assert depth_axis.contains(105.0)

    def test_outside_returns_sentinel(self, depth_axis):
        """Test values outside the axis return NOT_FOUND"""
        assert depth_axis.find_index_of(-5.1) == NOT_FOUND
        assert depth_axis.find_index_of(200.0) == NOT_FOUND
        assert not depth_axis.contains(200.0)

    def test_descending_axis(self):
        """Test lookups on a north-to-south latitude axis"""
        axis = ReferenceableAxis("lat", [90.0, 45.0, 0.0, -45.0, -90.0])
        assert not axis.is_ascending
        assert axis.find_index_of(90.0) == 0
        assert axis.find_index_of(0.0) == 2
        assert axis.find_index_of(-90.0) == 4
        # Shared boundary between cells 0 and 1
        assert axis.find_index_of(67.5) == 0
        # Outer boundaries
        assert axis.find_index_of(112.5) == 0
        assert axis.find_index_of(-112.5) == 4
        assert axis.find_index_of(120.0) == NOT_FOUND

    def test_longitude_wraps(self, lon_axis):
        """Test that longitudes are compared modulo 360"""
        assert lon_axis.find_index_of(-180.0) == 0
        assert lon_axis.find_index_of(170.0) == 35
        assert lon_axis.find_index_of(190.0) == 1
        assert lon_axis.find_index_of(176.0) == 0
        assert lon_axis.find_index_of(-530.0) == 1
        assert lon_axis.contains(1000.0)

    def test_single_value_axis(self):
        """Test an axis with one value and zero-width bounds"""
        axis = VerticalAxis("surface", [0.0], DEPTH_CRS)
        assert axis.find_index_of(0.0) == 0
        assert axis.find_index_of(1.0) == NOT_FOUND

    def test_time_axis_lookup(self):
        """Test lookup of instants between daily steps"""
        t0 = datetime(2000, 1, 1, tzinfo=timezone.utc)
        axis = TimeAxis("time", [t0 + timedelta(days=i) for i in range(10)])
        assert axis.find_index_of(t0 + timedelta(days=3, hours=6)) == 3
        assert axis.find_index_of(t0 + timedelta(days=3, hours=18)) == 4
        assert axis.find_index_of(t0 - timedelta(hours=12)) == 0
        assert axis.find_index_of(t0 - timedelta(hours=13)) == NOT_FOUND

    def test_naive_instant_is_utc(self):
        """Test a naive datetime is looked up as UTC"""
        t0 = datetime(2000, 1, 1, tzinfo=timezone.utc)
        axis = TimeAxis("time", [t0 + timedelta(days=i) for i in range(10)])
        assert axis.find_index_of(datetime(2000, 1, 5)) == 4
        assert axis.contains(datetime(2000, 1, 10, 12))
        assert not axis.contains(datetime(2000, 1, 10, 13))

    def test_vectorised_lookup_matches_scalar(self, depth_axis):
        """Test array lookup keeps the tie rule and the sentinel"""
        values = [-5.1, -5.0, 5.0, 14.9, 95.0, 105.0, 200.0, float("nan")]
        result = depth_axis.find_indices_of(values)
        assert result.tolist() == [NOT_FOUND, 0, 0, 1, 9, 10, NOT_FOUND, NOT_FOUND]

    def test_vectorised_lookup_descending_wrapped(self, lon_axis):
        """Test array lookup on wrapped and descending axes"""
        assert lon_axis.find_indices_of([-180.0, 176.0, 190.0, -530.0]).tolist() == [0, 0, 1, 1]
        lat = ReferenceableAxis("lat", [90.0, 45.0, 0.0, -45.0, -90.0])
        assert lat.find_indices_of([67.5, 0.0, -112.5, 120.0]).tolist() == [0, 2, 4, NOT_FOUND]


class TestIndexRanges:
    """Test selection of index ranges by value and by extent"""

    def test_indices_between(self, depth_axis):
        """Test centre containment with inclusive edges"""
        assert depth_axis.indices_between(20.0, 50.0) == range(2, 6)
        assert depth_axis.indices_between(21.0, 29.0) == range(0)
        assert depth_axis.indices_between(50.0, 20.0) == range(0)

    def test_indices_between_descending(self):
        """Test centre containment on a descending axis"""
        axis = ReferenceableAxis("lat", [90.0, 45.0, 0.0, -45.0, -90.0])
        assert axis.indices_between(-50.0, 50.0) == range(1, 4)

    def test_indices_intersecting(self, depth_axis):
        """Test cells whose boundaries intersect an extent"""
        assert depth_axis.indices_intersecting(Extent(12.0, 37.0)) == range(1, 5)
        assert depth_axis.indices_intersecting(Extent(-50.0, 0.0)) == range(0, 1)
        assert depth_axis.indices_intersecting(Extent(90.0, 500.0)) == range(9, 11)
        assert depth_axis.indices_intersecting(Extent(-50.0, -10.0)) == range(0)

    def test_subset_keeps_type_and_bounds(self, depth_axis):
        """Test that a subset keeps the vertical CRS and original boundaries"""
        sub = depth_axis.subset(range(2, 5))
        assert isinstance(sub, VerticalAxis)
        assert sub.values == (20.0, 30.0, 40.0)
        assert sub.vertical_crs == DEPTH_CRS
        assert sub.coordinate_extent == Extent(15.0, 45.0)

    def test_empty_subset(self, depth_axis):
        """Test that an empty subset is rejected"""
        with pytest.raises(ValueError):
            depth_axis.subset(range(0))
