from sqlalchemy import BigInteger, Integer

# SQLite only autoincrements an INTEGER PRIMARY KEY, so surrogate keys fall back
# to Integer there; MySQL keeps BIGINT.
BIGINT = BigInteger().with_variant(Integer, "sqlite")
