import pytest

SAMPLE_CSV = """id,name,city,department
10,John Doe,New York,Engineering
11,Jane Smith,Scranton,Sales
12,Bob Johnson,Scranton,Engineering
13,Alice Williams,New York,Marketing
14,Charlie Brown,Stamford,Sales
15,Diana Prince,Scranton,Engineering
16,Eve Adams,Boston,Marketing
17,Frank Miller,Scranton,Sales
"""


@pytest.fixture
def sample_csv_path(tmp_path) -> str:
    path = tmp_path / "people.csv"
    path.write_text(SAMPLE_CSV)
    return str(path)


@pytest.fixture
def no_id_csv_path(tmp_path) -> str:
    path = tmp_path / "plain.csv"
    path.write_text("name,city\nAnn,Oslo\nBen,Rome\nCid,Oslo\n")
    return str(path)
