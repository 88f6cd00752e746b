from core.models import FilterSettings
from core.projection import project_products


def titles(products):
    return [p.title for p in products]


def test_sort_by_name_ascending_then_descending(product):
    products = [product(1, "B", 5), product(2, "A", 10)]

    asc = project_products(products, FilterSettings(sortBy="name", sortOrder="asc"))
    desc = project_products(products, FilterSettings(sortBy="name", sortOrder="desc"))

    assert titles(asc) == ["A", "B"]
    assert titles(desc) == ["B", "A"]


def test_search_matches_title_case_insensitively(product):
    products = [product(1, "Running Shoe"), product(2, "Hat")]

    result = project_products(products, FilterSettings(searchTerm="shoe"))

    assert titles(result) == ["Running Shoe"]


def test_search_matches_description(product):
    products = [
        product(1, "Trail Runner", description="Waterproof SHOE for hiking"),
        product(2, "Cap", description="cotton"),
    ]

    result = project_products(products, FilterSettings(searchTerm="Shoe"))

    assert titles(result) == ["Trail Runner"]


def test_category_filter_is_exact_and_case_sensitive(product):
    products = [
        product(1, "Ring", category="jewelery"),
        product(2, "Necklace", category="Jewelery"),
        product(3, "TV", category="electronics"),
    ]

    result = project_products(products, FilterSettings(selectedCategory="jewelery"))

    assert titles(result) == ["Ring"]
    assert len(project_products(products, FilterSettings())) == 3


def test_price_sort_is_stable_in_both_directions(product):
    products = [
        product(1, "first ten", 10),
        product(2, "cheap", 1),
        product(3, "second ten", 10),
        product(4, "pricey", 99),
    ]

    asc = project_products(products, FilterSettings(sortBy="price", sortOrder="asc"))
    desc = project_products(products, FilterSettings(sortBy="price", sortOrder="desc"))

    assert titles(asc) == ["cheap", "first ten", "second ten", "pricey"]
    assert titles(desc) == ["pricey", "first ten", "second ten", "cheap"]


def test_name_sort_ignores_case_and_accents(product):
    products = [product(1, "fig"), product(2, "Éclair"), product(3, "Donut"), product(4, "apple")]

    result = project_products(products, FilterSettings(sortBy="name"))

    assert titles(result) == ["apple", "Donut", "Éclair", "fig"]


def test_filters_combine(product):
    products = [
        product(1, "Gold Ring", 168, category="jewelery"),
        product(2, "Silver Ring", 10.99, category="jewelery"),
        product(3, "Ring Light", 25, category="electronics"),
    ]
    filters = FilterSettings(
        searchTerm="ring", selectedCategory="jewelery", sortBy="price", sortOrder="asc"
    )

    assert titles(project_products(products, filters)) == ["Silver Ring", "Gold Ring"]


def test_projection_is_idempotent(product):
    products = [product(i, t, p) for i, (t, p) in enumerate([("b hat", 3), ("a hat", 3), ("c", 1)])]

    unsorted = FilterSettings(searchTerm="hat")
    once = project_products(products, unsorted)
    assert project_products(once, unsorted) == once

    by_price = FilterSettings(searchTerm="hat", sortBy="price", sortOrder="desc")
    once = project_products(products, by_price)
    assert project_products(once, by_price) == once


def test_projection_does_not_touch_input(product):
    products = [product(1, "B"), product(2, "A")]
    before = list(products)

    project_products(products, FilterSettings(sortBy="name"))

    assert products == before


def test_projection_is_deterministic(product):
    products = [product(i, f"item {i % 3}", i % 4) for i in range(20)]
    filters = FilterSettings(searchTerm="item", sortBy="name", sortOrder="desc")

    first = [p.id for p in project_products(products, filters)]
    second = [p.id for p in project_products(list(products), filters)]

    assert first == second


def test_name_ties_put_lowercase_first(product):
    products = [product(1, "Apple"), product(2, "b"), product(3, "apple")]

    asc = project_products(products, FilterSettings(sortBy="name", sortOrder="asc"))

    assert titles(asc) == ["apple", "Apple", "b"]
