OPTIONAL_ID_FIELDS = ('amazon_asin', 'ml_item_id', 'ml_variation_id')


def validate_quantity(value):
    """Returns (is_valid, reason)."""
    if value is None:
        return False, "missing quantity"
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"non-integer quantity ({value!r})"
    if value < 0:
        return False, f"negative quantity ({value})"
    return True, ""


def validate_product_payload(raw):
    """Returns (is_valid, reason)."""
    if not isinstance(raw, dict):
        return False, "payload must be an object"

    sku = raw.get('sku')
    if not sku or not isinstance(sku, str) or not sku.strip():
        return False, "missing SKU"

    name = raw.get('name')
    if not isinstance(name, str) or not name.strip():
        return False, f"{sku}: missing name"

    qty = raw.get('warehouse_qty')
    if qty is not None:
        is_valid, reason = validate_quantity(qty)
        if not is_valid:
            return False, f"{sku}: {reason}"

    for field in OPTIONAL_ID_FIELDS:
        value = raw.get(field)
        if value is not None and not isinstance(value, (str, int)):
            return False, f"{sku}: invalid {field}"

    return True, ""


def normalize_external_id(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def transform_product_payload(raw):
    return {
        'sku': raw['sku'].strip(),
        'name': raw['name'].strip(),
        'warehouse_qty': raw.get('warehouse_qty') or 0,
        **{field: normalize_external_id(raw.get(field)) for field in OPTIONAL_ID_FIELDS},
    }


def compute_sales(previous, current):
    # A quantity increase is a restock or manual edit, never negative sales
    return max(0, previous - current)


def compute_new_quantity(warehouse_qty, total_sales):
    return max(0, warehouse_qty - total_sales)
