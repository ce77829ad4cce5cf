"""Tests for computed properties: declaration, caching and idempotence."""

import pytest

import kvopath
from kvopath import NotCallableError, Observable, Property
from kvopath.descriptors import declared_properties


class Counter(Observable):
    """Cacheable property backed by a call counter."""

    def __init__(self):
        self.calls = 0

    def _count(self, key, *value):
        self.calls += 1
        return value[0] if value else self.calls

    count = kvopath.property(_count).cacheable()
    volatile = kvopath.property(_count)


class Idempotent(Observable):
    def __init__(self):
        self.calls = 0
        self._value = None

    def _store(self, key, *value):
        if value:
            self.calls += 1
            self._value = value[0]
        return self._value

    value = kvopath.property(_store).idempotent()
    cached_value = kvopath.property(_store).idempotent().cacheable()


class TestDeclaration:
    def test_flags(self):
        prop = kvopath.property(lambda obj, key: 1, "a", "b.c")
        assert prop.is_property is True
        assert prop.dependent_keys == ("a", "b.c")
        assert prop.is_cacheable is False
        assert prop.is_idempotent is False

    def test_builder_methods_return_descriptor(self):
        prop = kvopath.property(lambda obj, key: 1)
        assert prop.cacheable() is prop
        assert prop.idempotent() is prop
        assert prop.is_cacheable and prop.is_idempotent

    def test_decorator_form(self):
        class Host(Observable):
            @kvopath.property("a", "b", cacheable=True)
            def total(self, key):
                return 3

        assert isinstance(Host.__dict__["total"], Property)
        assert Host.total.dependent_keys == ("a", "b")
        assert Host.total.is_cacheable

    def test_not_callable(self):
        with pytest.raises(NotCallableError):
            kvopath.property(42)

    def test_one_property_under_two_names_is_rejected(self):
        prop = kvopath.property(lambda obj, key: 1)
        # Python < 3.12 wraps errors from __set_name__ in RuntimeError.
        with pytest.raises((TypeError, RuntimeError)):
            class Host(Observable):
                first = prop
                second = prop

    def test_same_name_on_two_classes(self):
        prop = kvopath.property(lambda obj, key: 1)

        class One(Observable):
            total = prop

        class Two(Observable):
            total = prop

        assert One().total == 1
        assert Two().total == 1

    def test_declarations_scanned_once_per_class(self):
        class Base(Observable):
            total = kvopath.property(lambda obj, key: 1)

        class Child(Base):
            extra = kvopath.property(lambda obj, key: 2)

        found = declared_properties(Child)
        assert declared_properties(Child) is found
        assert sorted(found) == ["extra", "total"]
        assert list(declared_properties(Base)) == ["total"]

    def test_declaration_creates_no_metadata(self):
        class Host(Observable):
            total = kvopath.property(lambda obj, key: 3)

        host = Host()
        assert kvopath.meta(host) is None
        assert host.total == 3
        assert kvopath.meta(host) is not None


class TestGetAndSet:
    def test_called_with_key(self):
        seen = []

        class Host(Observable):
            def _fn(self, *args):
                seen.append(args)
                return "value"

            key = kvopath.property(_fn)

        host = Host()
        assert kvopath.get(host, "key") == "value"
        kvopath.set(host, "key", "new")
        assert seen == [("key",), ("key", "new")]

    def test_attribute_access_goes_through_get_and_set(self):
        c = Counter()
        assert c.volatile == 1
        assert c.volatile == 2
        c.count = "x"
        assert c.count == "x"

    def test_stored_field(self):
        class Host(Observable):
            language = kvopath.property()

        host = Host()
        assert host.language is None
        host.language = "fr"
        assert host.language == "fr"
        assert kvopath.get(host, "language") == "fr"
        assert "language" not in vars(host)

    def test_set_publishes_value(self):
        c = Counter()
        seen = []
        c.subscribe("count", lambda *args: seen.append(args), synchronous=True)
        c.set("count", "x")
        assert seen == [("count", "x")]

    def test_nested_path_through_computed(self):
        class Host(Observable):
            def _box(self, key, *value):
                return {"inner": self}

            box = kvopath.property(_box)
            name = kvopath.property()

        host = Host()
        host.set_path("box.inner.name", "deep")
        assert host.get_path("box.inner.name") == "deep"


class TestCacheable:
    def test_four_gets_call_once(self):
        c = Counter()
        values = [kvopath.get(c, "count") for _ in range(4)]
        assert c.calls == 1
        assert values == [1, 1, 1, 1]

    def test_set_calls_once_and_caches_result(self):
        c = Counter()
        kvopath.get(c, "count")
        kvopath.set(c, "count", "x")
        assert c.calls == 2
        assert kvopath.get(c, "count") == "x"
        assert kvopath.get(c, "count") == "x"
        assert c.calls == 2

    def test_set_before_any_get(self):
        c = Counter()
        kvopath.set(c, "count", "foo")
        assert c.calls == 1
        assert kvopath.get(c, "count") == "foo"
        assert c.calls == 1

    def test_non_cacheable_calls_every_time(self):
        c = Counter()
        for _ in range(3):
            kvopath.get(c, "volatile")
        assert c.calls == 3

    def test_cache_is_per_instance(self):
        a, b = Counter(), Counter()
        a.count = "a"
        assert b.count == 1
        assert a.count == "a"
        assert kvopath.meta(a).cache == {"count": "a"}
        assert kvopath.meta(b).cache == {"count": 1}


class TestIdempotent:
    def test_same_value_calls_once(self):
        o = Idempotent()
        kvopath.set(o, "value", "once")
        kvopath.set(o, "value", "once")
        assert o.calls == 1
        assert kvopath.get(o, "value") == "once"
        assert o.calls == 1

    def test_new_value_calls_again(self):
        o = Idempotent()
        kvopath.set(o, "value", "once")
        kvopath.set(o, "value", "twice")
        assert o.calls == 2
        assert kvopath.get(o, "value") == "twice"

    def test_suppressed_set_does_not_notify(self):
        o = Idempotent()
        seen = []
        o.subscribe("value", lambda *args: seen.append(args), synchronous=True)
        o.set("value", "same").set("value", "same")
        assert seen == [("value", "same")]

    def test_only_previous_value_is_compared(self):
        o = Idempotent()
        for v in ("a", "b", "a"):
            o.set("value", v)
        assert o.calls == 3

    def test_cacheable_and_idempotent(self):
        o = Idempotent()
        o.set("cached_value", 1)
        o.set("cached_value", 1)
        assert o.calls == 1
        assert kvopath.meta(o).cache["cached_value"] == 1
        assert kvopath.meta(o).last_set_cache["cached_value"] == 1

    def test_failed_set_can_be_retried(self):
        class Picky(Observable):
            def __init__(self):
                self.calls = []
                self.reject = True

            def _level(self, key, *value):
                if value:
                    self.calls.append(value[0])
                    if self.reject:
                        self.reject = False
                        raise ValueError(value[0])
                return self.calls[-1] if self.calls else None

            level = kvopath.property(_level).idempotent()

        p = Picky()
        with pytest.raises(ValueError):
            p.set("level", "high")
        assert "level" not in kvopath.meta(p).last_set_cache
        p.set("level", "high")
        assert p.calls == ["high", "high"]
        assert kvopath.meta(p).last_set_cache["level"] == "high"

    def test_suppressed_set_announces_nothing(self):
        o = Idempotent()
        seen = []
        o.subscribe("value:before", lambda *args: seen.append(args), synchronous=True)
        o.set("value", "same").set("value", "same")
        assert seen == [("value:before",)]
