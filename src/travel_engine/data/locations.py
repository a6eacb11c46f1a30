"""Static coordinate tables for known cities and regions (city-centroid accuracy)."""

from __future__ import annotations

CITY_COORDINATES: dict[str, tuple[float, float]] = {
    "São Paulo": (-23.5505, -46.6333),
    "Rio de Janeiro": (-22.9068, -43.1729),
    "Brasília": (-15.7942, -47.8822),
    "Salvador": (-12.9714, -38.5014),
    "Fortaleza": (-3.7172, -38.5433),
    "Belo Horizonte": (-19.9167, -43.9345),
    "Manaus": (-3.1190, -60.0217),
    "Curitiba": (-25.4284, -49.2733),
    "Recife": (-8.0476, -34.8770),
    "Porto Alegre": (-30.0346, -51.2177),
    "Belém": (-1.4558, -48.5044),
    "Goiânia": (-16.6864, -49.2643),
    "Guarulhos": (-23.4538, -46.5331),
    "Campinas": (-22.9056, -47.0608),
    "São Luís": (-2.5387, -44.2825),
    "São Gonçalo": (-22.8269, -43.0539),
    "Maceió": (-9.5713, -36.7820),
    "Duque de Caxias": (-22.7856, -43.3047),
    "Natal": (-5.7945, -35.2110),
    "Teresina": (-5.0892, -42.8019),
    "Campo Grande": (-20.4428, -54.6458),
    "Nova Iguaçu": (-22.7556, -43.4603),
    "São Bernardo do Campo": (-23.7150, -46.5550),
    "João Pessoa": (-7.1195, -34.8450),
    "Santo André": (-23.6669, -46.5322),
    "Osasco": (-23.5329, -46.7915),
    "São José dos Campos": (-23.1791, -45.8872),
    "Ribeirão Preto": (-21.1775, -47.8103),
    "Uberlândia": (-18.9128, -48.2755),
    "Sorocaba": (-23.5015, -47.4526),
    "Contagem": (-19.9317, -44.0539),
    "Aracaju": (-10.9091, -37.0677),
    "Feira de Santana": (-12.2664, -38.9661),
    "Cuiabá": (-15.6014, -56.0979),
    "Joinville": (-26.3044, -48.8467),
    "Juiz de Fora": (-21.7595, -43.3398),
    "Londrina": (-23.3045, -51.1696),
    "Niterói": (-22.8834, -43.1034),
    "Porto Velho": (-8.7619, -63.9039),
    "Caxias do Sul": (-29.1680, -51.1798),
    "Macapá": (0.0349, -51.0694),
    "Vila Velha": (-20.3297, -40.2925),
    "Florianópolis": (-27.5954, -48.5480),
    "Mauá": (-23.6677, -46.4613),
    "São José do Rio Preto": (-20.8113, -49.3757),
    "Mogi das Cruzes": (-23.5229, -46.1880),
    "Diadema": (-23.6864, -46.6228),
    "Jundiaí": (-23.1864, -46.8842),
    "Maringá": (-23.4205, -51.9333),
    "Rio Branco": (-9.9747, -67.8100),
    "Bauru": (-22.3147, -49.0606),
    "Vitória": (-20.3155, -40.3128),
    "Blumenau": (-26.9194, -49.0661),
    "Franca": (-20.5352, -47.4039),
    "Ponta Grossa": (-25.0916, -50.1668),
    "Cascavel": (-24.9578, -53.4595),
    "Praia Grande": (-24.0089, -46.4122),
    "Foz do Iguaçu": (-25.5163, -54.5854),
    "Petrópolis": (-22.5050, -43.1786),
    "Limeira": (-22.5647, -47.4017),
    "Volta Redonda": (-22.5231, -44.1042),
    "Taubaté": (-23.0264, -45.5553),
    "Novo Hamburgo": (-29.6914, -51.1306),
    "Santa Maria": (-29.6842, -53.8069),
    "Barueri": (-23.5107, -46.8761),
    "Guarujá": (-23.9931, -46.2564),
    "Sumaré": (-22.8214, -47.2668),
    "Americana": (-22.7379, -47.3311),
    "Araraquara": (-21.7944, -48.1756),
    "Jacareí": (-23.3051, -45.9658),
    "São Caetano do Sul": (-23.6231, -46.5512),
    "Rio Claro": (-22.4103, -47.5604),
    "Passo Fundo": (-28.2628, -52.4067),
    "Chapecó": (-27.1004, -52.6153),
    "Criciúma": (-28.6775, -49.3697),
    "Itajaí": (-26.9103, -48.6626),
    "Macaé": (-22.3708, -41.7869),
    "São José dos Pinhais": (-25.5347, -49.2056),
    "Pindamonhangaba": (-22.9246, -45.4613),
    "Palmas": (-10.1844, -48.3336),
    "Bento Gonçalves": (-29.1714, -51.5192),
    "Santos": (-23.9608, -46.3331),
    "Suzano": (-23.5428, -46.3108),
    "São Carlos": (-22.0175, -47.8910),
    "Atibaia": (-23.1169, -46.5503),
    "Cubatão": (-23.8953, -46.4253),
    "Guaratinguetá": (-22.8164, -45.1925),
    "Arapongas": (-23.4194, -51.4244),
    "Santa Cruz do Sul": (-29.7178, -52.4258),
}

REGION_COORDINATES: dict[str, tuple[float, float]] = {
    "AC": (-8.77, -70.55), "AL": (-9.57, -36.78), "AP": (1.41, -51.77), "AM": (-3.47, -65.10),
    "BA": (-12.96, -38.51), "CE": (-3.71, -38.54), "DF": (-15.79, -47.86), "ES": (-19.19, -40.34),
    "GO": (-16.64, -49.31), "MA": (-2.55, -44.30), "MT": (-12.64, -55.42), "MS": (-20.51, -54.54),
    "MG": (-18.10, -44.38), "PA": (-5.53, -52.33), "PB": (-7.24, -36.78), "PR": (-24.89, -51.55),
    "PE": (-8.28, -35.07), "PI": (-8.28, -43.68), "RJ": (-22.90, -43.17), "RN": (-5.22, -36.52),
    "RS": (-30.01, -51.22), "RO": (-11.22, -62.80), "RR": (1.99, -61.33), "SC": (-27.33, -49.44),
    "SP": (-23.55, -46.63), "SE": (-10.57, -37.38), "TO": (-10.25, -48.25),
}


def normalize_city(name: str | None) -> str:
    return " ".join((name or "").split()).casefold()


def normalize_region(code: str | None) -> str:
    return (code or "").strip().upper()
