"""
Static reference data for sheets, dashboard and document search.

Sheet headers and categories mirror the company's Google Sheets layout
(Turkish column names are what the spreadsheets actually contain).
"""

# Headers used when creating a new tab from the "create sheet" form
SHEET_TEMPLATE_HEADERS = {
    'accounting': ['Tarih', 'Açıklama', 'Tutar', 'Tür', 'Kategori'],
    'project': ['Proje Adı', 'Başlangıç', 'Bitiş', 'Durum', 'Harcama', 'Tamamlanma (%)'],
    'personnel': ['Ad Soyad', 'Pozisyon', 'Maaş', 'İşe Başlama', 'Telefon', 'Email'],
}

DEFAULT_TEMPLATE_HEADERS = ['Kolon 1', 'Kolon 2', 'Kolon 3']

# Sheet names containing one of these markers are treated as ledgers
ACCOUNTING_SHEET_MARKERS = ('muhasebe', 'accounting')

# Record type values accepted from the ledger form
INCOME_RECORD_TYPE = 'Gelir'
EXPENSE_RECORD_TYPE = 'Gider'

FINANCIAL_SHEET_TEMPLATES = {
    'Gelirler': {
        'template': 'income-tracking',
        'headers': [
            'Tarih', 'Proje ID', 'Gelir Türü', 'Açıklama', 'Tutar',
            'Para Birimi', 'Ödeme Durumu', 'Fatura No', 'Müşteri', 'Kategori',
        ],
        'categories': [
            'Hakediş Gelirleri', 'Enerji Gelirleri', 'Zirai Gelirler',
            'Kira Gelirleri', 'Faiz Gelirleri', 'Devlet Destekleri', 'Diğer Gelirler',
        ],
    },
    'Giderler': {
        'template': 'expense-tracking',
        'headers': [
            'Tarih', 'Proje ID', 'Kategori', 'Alt Kategori', 'Açıklama',
            'Tutar', 'Para Birimi', 'Ödeme Durumu', 'Tedarikçi', 'Fatura No',
        ],
        'categories': [
            'Şantiye Giderleri', 'Taşeron Hakedişleri', 'Merkez Giderleri',
            'Enerji ve Tarım Giderleri', 'Finansman Giderleri', 'Vergi ve SGK',
            'Diğer Giderler',
        ],
    },
    'Projeler': {
        'template': 'project-tracking',
        'headers': [
            'Proje Adı', 'Proje Numarası/Kodu', 'İşveren', 'Yüklenici Firma',
            'Müşavir Firma', 'Proje Türü', 'Proje Lokasyonu', 'Arsa Alanı (m²)',
            'İnşaat Alanı Brüt (m²)', 'İnşaat Alanı Net (m²)', 'Kat Adedi',
            'Başlangıç Tarihi', 'Bitiş Tarihi', 'Devam Durumu', 'Fiili Bitiş Tarihi',
            'Alt Yükleniciler', 'Yaklaşık Maliyet', 'Kesin Teminat %',
            'Geçici Teminat %', 'Finansman Kaynakları', 'Geçici Kabul Durumu',
            'Kesin Kabul Durumu', 'As-Built Proje Durumu',
        ],
        'categories': [
            'Konut Projeleri', 'Ticari Projeler', 'Endüstriyel Projeler',
            'Altyapı Projeleri', 'Kamu Projeleri', 'Özel Sektör Projeleri',
        ],
    },
    'Banka_Hesaplari': {
        'template': 'bank-accounts',
        'headers': [
            'Hesap Adı', 'Banka', 'Hesap No', 'Bakiye', 'Para Birimi',
            'Tarih', 'Hesap Türü', 'Durum',
        ],
    },
    'Yaklasan_Odemeler': {
        'template': 'upcoming-payments',
        'headers': [
            'Vade Tarihi', 'Açıklama', 'Tutar', 'Kategori', 'Öncelik',
            'Durum', 'Sorumlu', 'Notlar',
        ],
    },
    'Istirakler': {
        'template': 'subsidiaries',
        'headers': [
            'İştirak Adı', 'Sektör', 'Aylık Gelir', 'Aylık Gider', 'Net Kar',
            'Tarih', 'Aktif Projeler', 'Durum',
        ],
    },
}

# Short Turkish month names, index 0 = January
TURKISH_MONTHS = [
    'Oca', 'Şub', 'Mar', 'Nis', 'May', 'Haz',
    'Tem', 'Ağu', 'Eyl', 'Eki', 'Kas', 'Ara',
]

DASHBOARD_MONTH_WINDOW = 6
DASHBOARD_PROJECT_LIMIT = 3

# Document search tuning defaults
SEARCH_DEFAULTS = {
    'TEXT_SEARCH_LIMIT': 200,
    'MANUAL_VECTOR_FETCH_LIMIT': 1000,
    'VECTOR_THRESHOLD': 0.3,
    'MAX_RESULTS': 500,
    'HYBRID_VECTOR_THRESHOLD': 0.5,
    'HYBRID_VECTOR_WEIGHT': 0.3,
    'HYBRID_TEXT_WEIGHT': 0.7,
    'HYBRID_VECTOR_SHARE': 0.6,
    'TEXT_RESULT_SIMILARITY': 0.5,
    'SIMILAR_DOCUMENTS_LIMIT': 10,
}

# Columns matched by the keyword (ILIKE) document search
TEXT_SEARCH_COLUMNS = (
    'content', 'short_desc', 'keywords', 'letter_no', 'internal_no', 'ref_letters',
)

DOCUMENTS_TABLE = 'documents'
