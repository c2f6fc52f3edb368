"""Tests for screenshot identities and the identity builder."""

import pytest
from pydantic import ValidationError

from screenshot_diff.models.identity import Identity, IdentityBuilder


class TestIdentity:
    def test_plain_label(self):
        assert Identity(label="home").name == "home"

    def test_full_name(self):
        identity = Identity(label="form", section="auth", group="login", sequence=1)
        assert identity.name == "auth/login/01_form"
        assert identity.group_parts == ["auth", "login"]
        assert identity.file_label == "01_form"

    def test_sequence_above_99(self):
        assert Identity(label="x", group="g", sequence=123).name == "g/123_x"

    def test_blank_parts_are_dropped(self):
        identity = Identity(label="home", section="", group="")
        assert identity.section is None
        assert identity.name == "home"

    def test_is_immutable(self):
        identity = Identity(label="home")
        with pytest.raises(ValidationError):
            identity.label = "other"

    def test_hashable_and_equal_by_value(self):
        a = Identity(label="x", group="g", sequence=2)
        b = Identity(label="x", group="g", sequence=2)
        assert a == b
        assert len({a, b}) == 1

    @pytest.mark.parametrize("label", ["", "a/b", "..", "a\\b"])
    def test_invalid_labels(self, label):
        with pytest.raises(ValidationError):
            Identity(label=label)

    def test_group_cannot_escape_area(self):
        with pytest.raises(ValidationError):
            Identity(label="x", group="../outside")

    def test_str_is_name(self):
        assert str(Identity(label="x", section="s")) == "s/x"


class TestIdentityParse:
    def test_group_with_sequence(self):
        identity = Identity.parse("login/01_form")
        assert identity == Identity(label="form", group="login", sequence=1)

    def test_section_and_group(self):
        identity = Identity.parse("admin/users/03_list")
        assert identity.section == "admin"
        assert identity.group == "users"
        assert identity.sequence == 3
        assert identity.label == "list"

    def test_single_directory_without_sequence_is_section(self):
        identity = Identity.parse("admin/dashboard")
        assert identity.section == "admin"
        assert identity.group is None
        assert identity.sequence is None

    def test_top_level_numbered_label_is_kept(self):
        assert Identity.parse("01_start") == Identity(label="01_start")

    @pytest.mark.parametrize("name", ["home", "login/01_form", "a/b/02_c", "admin/dashboard"])
    def test_parse_name_roundtrip(self, name):
        assert Identity.parse(name).name == name

    def test_too_deep(self):
        with pytest.raises(ValueError):
            Identity.parse("a/b/c/d")

    def test_empty(self):
        with pytest.raises(ValueError):
            Identity.parse("/")


class TestIdentityBuilder:
    def test_no_group_means_no_sequence(self):
        builder = IdentityBuilder().in_section("admin")
        identity, next_builder = builder.build("home")
        assert identity.name == "admin/home"
        assert next_builder == builder

    def test_group_numbers_screenshots(self):
        builder = IdentityBuilder().in_group("login")
        first, builder = builder.build("form")
        second, builder = builder.build("error")
        assert first.name == "login/01_form"
        assert second.name == "login/02_error"
        assert builder.next_sequence == 3

    def test_reentering_group_resets_counter(self):
        builder = IdentityBuilder().in_group("login")
        _, builder = builder.build("form")
        _, builder = builder.build("error")
        builder = builder.in_group("login")
        identity, _ = builder.build("form")
        assert identity.sequence == 1

    def test_builders_are_independent_values(self):
        base = IdentityBuilder().in_group("g")
        _, advanced = base.build("a")
        identity, _ = base.build("b")
        assert identity.sequence == 1
        assert advanced.next_sequence == 2

    def test_section_and_group(self):
        builder = IdentityBuilder().in_section("admin").in_group("users")
        identity, _ = builder.build("list")
        assert identity.name == "admin/users/01_list"
        assert builder.group_identity_parts == ["admin", "users"]
