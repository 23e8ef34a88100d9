"""
Unit tests for variant location naming and input validation.
"""
import pytest

from picstore.storage.exceptions import InvalidInputError
from picstore.storage.locations import (
    ORIGINAL,
    join_url,
    locate,
    normalize_base_url,
    validate_key,
    validate_sizes,
)

KEYS = [
    "ab/cd.jpg",
    "ab/cd/abcdef0123456789.jpeg",
    "ab/cd",
    "a.b/cd",
    "photo.tar.gz",
    "ab/.hidden",
    "x",
]

LABELS = ["small", "medium", "large", "thumb", "s", "2x"]


class TestLocate:
    """Location resolver tests"""

    def test_original_keeps_key(self):
        """Test the original is stored at its key"""
        for key in KEYS:
            assert locate(key, ORIGINAL) == key

    def test_label_before_extension(self):
        """Test the label is inserted before the file extension"""
        assert locate("ab/cd.jpg", "thumb") == "ab/cd_thumb.jpg"
        assert locate("ab/cd/ef.png", "small") == "ab/cd/ef_small.png"

    def test_key_without_extension(self):
        """Test keys without extension get the label appended"""
        assert locate("ab/cd", "thumb") == "ab/cd_thumb"

    def test_dot_in_directory_is_not_an_extension(self):
        """Test only the file name's extension is considered"""
        assert locate("a.b/cd", "thumb") == "a.b/cd_thumb"

    def test_only_last_extension_is_split(self):
        """Test multi-dot file names keep all but the last suffix in the stem"""
        assert locate("photo.tar.gz", "small") == "photo.tar_small.gz"

    def test_deterministic(self):
        """Test the same key and label always give the same location"""
        for key in KEYS:
            for label in LABELS:
                assert locate(key, label) == locate(key, label)

    def test_labels_never_collide(self):
        """Test distinct labels of one key map to distinct locations"""
        for key in KEYS:
            locations = [locate(key, label) for label in [ORIGINAL, *LABELS]]
            assert len(set(locations)) == len(locations)

    def test_variant_differs_from_key(self):
        """Test no variant overwrites the original"""
        for key in KEYS:
            for label in LABELS:
                assert locate(key, label) != key


class TestUrls:
    """Base URL handling tests"""

    def test_trailing_slash_added(self):
        assert normalize_base_url("http://cdn.example.com") == "http://cdn.example.com/"

    def test_trailing_slash_kept(self):
        assert normalize_base_url("/static/upload/") == "/static/upload/"

    def test_empty_base_url_is_root(self):
        assert normalize_base_url("") == "/"
        assert normalize_base_url(None) == "/"

    def test_join_strips_leading_slash(self):
        assert join_url("http://cdn.example.com/", "/ab/cd.jpg") == "http://cdn.example.com/ab/cd.jpg"


class TestValidateKey:
    """Asset key validation tests"""

    def test_valid_keys(self):
        for key in KEYS:
            assert validate_key(key) == key

    @pytest.mark.parametrize("key", ["", "   ", None])
    def test_empty_key(self, key):
        """Test empty keys are rejected"""
        with pytest.raises(InvalidInputError) as exc:
            validate_key(key)
        assert "non-empty" in str(exc.value)

    @pytest.mark.parametrize("key", [
        "../etc/passwd", "ab/../../cd.jpg", ".", "ab/./cd.jpg", "ab/", "ab\\cd.jpg", "ab/c\x00d.jpg",
    ])
    def test_unsafe_key(self, key):
        """Test keys that escape the storage root or name a directory"""
        with pytest.raises(InvalidInputError):
            validate_key(key)


class TestValidateSizes:
    """Size label and parameter validation tests"""

    def test_labels_from_iterable(self):
        assert validate_sizes("ab/cd.jpg", ["small", "large"]) == ["small", "large"]

    def test_labels_from_mapping(self):
        sizes = {"small": {"width": 10, "height": 10}}
        assert validate_sizes("ab/cd.jpg", sizes, require_params=True) == ["small"]

    def test_no_sizes(self):
        assert validate_sizes("ab/cd.jpg", {}) == []

    def test_reserved_label(self):
        """Test the original's label cannot be requested as a size"""
        with pytest.raises(InvalidInputError) as exc:
            validate_sizes("ab/cd.jpg", ["o"])
        assert "reserved" in str(exc.value)
        assert exc.value.label == "o"

    @pytest.mark.parametrize("label", ["", "a/b", "a\\b"])
    def test_invalid_label(self, label):
        with pytest.raises(InvalidInputError):
            validate_sizes("ab/cd.jpg", [label])

    def test_string_instead_of_labels(self):
        """Test a bare string is not mistaken for a set of one-letter labels"""
        with pytest.raises(InvalidInputError):
            validate_sizes("ab/cd.jpg", "small")

    def test_empty_params(self):
        """Test a size without parameters is rejected"""
        with pytest.raises(InvalidInputError) as exc:
            validate_sizes("ab/cd.jpg", {"small": {}}, require_params=True)
        assert exc.value.label == "small"
        assert exc.value.key == "ab/cd.jpg"

    def test_params_required_as_mapping(self):
        with pytest.raises(InvalidInputError):
            validate_sizes("ab/cd.jpg", ["small"], require_params=True)
