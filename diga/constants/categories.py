# Order matters: the first category with a keyword inside the text wins.
# Keywords are matched as plain substrings of the normalised text (lower case,
# no accents), so short ones are written as phrases to stay out of common
# words ("gas" would fire inside "gastei", "oi" inside "coisa").
CATEGORY_KEYWORDS = [
    ('Alimentação', [
        'mercado', 'supermercado', 'mercadinho', 'comida', 'ifood', 'rappi', 'uber eats', 'restaurante',
        'lanche', 'pizza', 'hamburguer', 'burger king', 'mcdonalds', 'madero', 'subway', 'sushi', 'acai',
        'padaria', 'cafe', 'almoco', 'jantar', 'churrasco', 'bebida', 'cerveja', 'agua mineral', 'sorvete',
        'marmita', 'quentinha', 'pastel', 'feira livre', 'na feira', 'da feira', 'acougue',
    ]),
    ('Transporte', [
        'uber', '99pop', '99 pop', 'taxi', 'onibus', 'metro', 'trem', 'passagem', 'gasolina', 'combustivel',
        'etanol', 'diesel', 'posto de gasolina', 'ipiranga', 'shell', 'estacionamento', 'pedagio', 'multa',
        'carro', 'moto', 'oficina', 'mecanico', 'pneu',
    ]),
    ('Casa', [
        'aluguel', 'condominio', 'luz', 'energia', 'sabesp', 'conta de agua', 'internet', 'wifi', 'vivo',
        'claro', 'tim celular', 'oi fibra', 'conta de gas', 'gas de cozinha', 'botijao', 'iptu', 'faxina',
        'limpeza', 'moveis', 'eletro', 'manutencao', 'pedreiro', 'reforma',
    ]),
    ('Saúde', [
        'farmacia', 'remedio', 'drogaria', 'medico', 'consulta', 'exame', 'dentista', 'psicologo',
        'terapia', 'plano de saude', 'convenio', 'hospital', 'vacina', 'academia', 'suplemento', 'whey',
    ]),
    ('Lazer', [
        'cinema', 'filme', 'ingresso', 'show', 'teatro', 'jogo', 'game', 'steam', 'playstation', 'xbox',
        'nintendo', 'netflix', 'spotify', 'prime video', 'amazon prime', 'disney', 'hbo', 'assinatura',
        'barzinho', 'boteco', 'balada', 'festa', 'viagem', 'hotel', 'passagem aerea',
    ]),
    ('Educação', [
        'curso', 'escola', 'faculdade', 'universidade', 'mensalidade', 'livro', 'material', 'papelaria',
        'aula', 'professor', 'idiomas', 'ingles',
    ]),
    ('Vestuário', [
        'roupa', 'camisa', 'camiseta', 'calca', 'short', 'tenis', 'sapato', 'chinelo', 'bolsa', 'acessorio',
        'shopping', 'loja', 'renner', 'riachuelo', 'zara', 'shein', 'nike', 'adidas',
    ]),
    ('Serviços', [
        'cabelo', 'corte', 'barba', 'barbearia', 'salao', 'manicure', 'unha', 'estetica', 'depilacao',
        'massagem', 'lavanderia', 'costureira',
    ]),
    ('Pets', [
        'petshop', 'pet shop', 'racao', 'veterinario', 'banho', 'tosa', 'gato', 'cachorro', 'areia',
    ]),
]

DEFAULT_CATEGORY = 'Outros'
INCOME_CATEGORY = 'Renda'
SAVINGS_CATEGORY = 'Economia'
GENERIC_LIMIT_CATEGORY = 'Geral'
