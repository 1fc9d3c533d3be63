import pytest

from ..e_commerce import crud


@pytest.fixture
def tree(make_category, make_product):
    """
    Home
      Kitchen
        Cookware
      Garden (inactive)
    Toys
    """
    home = make_category("Home", display_order=1)
    kitchen = make_category("Kitchen", parent=home, display_order=1)
    cookware = make_category("Cookware", parent=kitchen)
    garden = make_category("Garden", parent=home, is_active=False, display_order=2)
    toys = make_category("Toys", display_order=2)
    make_product(name="Pan", category_id=cookware.id)
    make_product(name="Pot", category_id=cookware.id)
    make_product(name="Kettle", category_id=kitchen.id)
    make_product(name="Hose", category_id=garden.id)
    make_product(name="Old Toy", category_id=toys.id, status="inactive")
    return {"home": home, "kitchen": kitchen, "cookware": cookware, "garden": garden, "toys": toys}


def test_descendant_ids_include_the_category_itself(db, tree):
    ids = crud.get_descendant_category_ids(db, tree["home"].id)
    assert ids[0] == tree["home"].id
    assert set(ids) == {tree["home"].id, tree["kitchen"].id, tree["cookware"].id, tree["garden"].id}
    assert crud.get_descendant_category_ids(db, tree["toys"].id) == [tree["toys"].id]


def test_breadcrumbs_are_root_first(client, tree):
    response = client.get(f"/api/categories/{tree['cookware'].id}/breadcrumbs")
    assert [crumb["name"] for crumb in response.json()["data"]["breadcrumbs"]] == ["Home", "Kitchen", "Cookware"]


def test_category_detail_counts_descendants(client, tree):
    data = client.get(f"/api/categories/{tree['home'].id}").json()["data"]
    assert data["product_count"] == 4
    assert [child["name"] for child in data["children"]] == ["Kitchen"]
    assert data["children"][0]["product_count"] == 3
    assert data["parent"] is None

    kitchen = client.get(f"/api/categories/slug/{tree['kitchen'].slug}").json()["data"]
    assert kitchen["parent"]["name"] == "Home"


def test_inactive_or_missing_category_is_404(client, tree):
    assert client.get(f"/api/categories/{tree['garden'].id}").status_code == 404
    assert client.get("/api/categories/cat_missing").status_code == 404
    assert client.get("/api/categories/slug/garden").status_code == 404


def test_flat_list_hides_empty_and_inactive(client, tree):
    data = client.get("/api/categories").json()["data"]["categories"]
    assert [category["name"] for category in data] == ["Cookware", "Kitchen"]

    everything = client.get("/api/categories", params={"includeEmpty": "true"}).json()["data"]["categories"]
    assert "Toys" in [category["name"] for category in everything]
    assert "Garden" not in [category["name"] for category in everything]


def test_counts_only_active_products(db, tree):
    counts = {row["name"]: row["product_count"] for row in crud.get_categories_with_counts(db, include_empty=True)}
    assert counts["Toys"] == 0
    assert counts["Cookware"] == 2
    assert counts["Kitchen"] == 1


def test_tree_prunes_empty_and_inactive_branches(client, tree):
    roots = client.get("/api/categories/tree").json()["data"]["categories"]
    assert [root["name"] for root in roots] == ["Home"]
    home = roots[0]
    assert home["total_product_count"] == 3
    assert [child["name"] for child in home["children"]] == ["Kitchen"]
    kitchen = home["children"][0]
    assert kitchen["product_count"] == 1
    assert kitchen["children"][0]["name"] == "Cookware"


def test_tree_with_empty_and_inactive(db, tree):
    roots = crud.get_category_tree(db, include_empty=True, include_inactive=True)
    names = [root["name"] for root in roots]
    assert "Toys" in names
    home = next(root for root in roots if root["name"] == "Home")
    assert {child["name"] for child in home["children"]} == {"Kitchen", "Garden"}
    assert home["total_product_count"] == 4


def test_category_products_endpoint(client, tree):
    response = client.get(f"/api/categories/{tree['kitchen'].id}/products", params={"sort": "name"})
    data = response.json()["data"]
    assert [product["name"] for product in data["products"]] == ["Kettle", "Pan", "Pot"]
    assert data["pagination"]["total"] == 3

    searched = client.get(f"/api/categories/{tree['kitchen'].id}/products", params={"search": "po"})
    assert [product["name"] for product in searched.json()["data"]["products"]] == ["Pot"]
