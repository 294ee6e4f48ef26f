from diga.utils.dates import today_sp

CSV_HEADER = "Data,Tipo,Categoria,Descricao,Valor"
_FORMULA_PREFIXES = ("=", "+", "-", "@")


def defuse_cell(text):
    """Neutralise spreadsheet formulas and quote the cell."""
    safe = text or ""
    if safe.startswith(_FORMULA_PREFIXES):
        safe = "'" + safe
    return '"' + safe.replace('"', '""') + '"'


def _plain_cell(text):
    s = text or ""
    if any(c in s for c in ',"\n'):
        return '"' + s.replace('"', '""') + '"'
    return s


def export_csv(transactions):
    lines = [CSV_HEADER]
    for t in transactions:
        lines.append(",".join([
            t.date.isoformat(),
            t.type.value,
            _plain_cell(t.category),
            defuse_cell(t.description),
            f"{t.amount:.2f}",
        ]))
    return "\n".join(lines) + "\n"


def export_filename(day=None):
    return f"diga_export_{(day or today_sp()).isoformat()}.csv"
