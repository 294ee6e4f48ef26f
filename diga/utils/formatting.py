def formatar_moeda(valor, com_simbolo=True, negrito=False):
    if valor is None or valor == 0:
        texto = "R$ 0,00" if com_simbolo else "0,00"
        return f"**{texto}**" if negrito else texto
    valor_abs = abs(valor)
    valor_str = f"{valor_abs:,.2f}"
    valor_str = valor_str.replace(",", "X").replace(".", ",").replace("X", ".")
    sinal = "- " if valor < 0 else ""
    simbolo = "R$ " if com_simbolo else ""
    texto = f"{sinal}{simbolo}{valor_str}"
    return f"**{texto}**" if negrito else texto

def formatar_percentual(valor, negrito=False):
    texto = f"{valor:.1f}%"
    return f"**{texto}**" if negrito else texto

def capitalizar(texto):
    t = (texto or "").strip()
    if not t:
        return ""
    return t[:1].upper() + t[1:]
