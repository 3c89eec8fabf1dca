# rentradar/connectors/catalog.py
"""
Built-in source catalog.

Adding a site means adding a record here (or to the JSON file named by
SOURCES_FILE), not writing a scraper class. Records use the same shape either way;
see connectors/registry.py for the loader and defaults.

URL templates may use: {base} {operation} {property_type} {city} {neighborhood}
{neighborhood_segment} ("/<slug>" or "") and {location} (neighborhood slug, else city slug).
Query templates may also use {min_rooms} {max_rooms} {min_area} {max_area}
{min_price} {max_price}; a parameter whose value renders empty is dropped.
"""
from __future__ import annotations

from typing import Any

DEFAULT_SOURCES: list[dict[str, Any]] = [
    {
        "id": "fincaraiz",
        "name": "Fincaraíz",
        "base_url": "https://www.fincaraiz.com.co",
        "priority": 1,
        "rate_limit": {"requests_per_minute": 30, "delay_between_requests_s": 2.0, "max_concurrent_requests": 2},
        "search_url_template": "{base}/{operation}/{property_type}/{city}{neighborhood_segment}",
        "query_params": {"min_rooms": "{min_rooms}", "min_area": "{min_area}", "max_price": "{max_price}"},
        "pagination": {"style": "query", "param": "pagina"},
        "extraction": {
            "card_selectors": ['[data-testid="property-card"]', ".listing-card", ".property-item", '[class*="property"]'],
            "field_selectors": {
                "title": ['[data-testid="property-title"]', ".property-title", ".listing-title", "h3", "h4"],
                "price": ['[data-testid="property-price"]', ".listing-price", ".price", ".precio"],
                "area": ['[data-testid="property-area"]', ".property-area", ".area", ".superficie", ".m2"],
                "rooms": ['[data-testid="property-rooms"]', ".habitaciones", ".alcobas", ".rooms", ".bedrooms"],
                "bathrooms": ['[data-testid="property-bathrooms"]', ".banos", ".bathrooms"],
                "location": ['[data-testid="property-location"]', ".ubicacion", ".direccion", ".location", ".address"],
                "amenities": [".caracteristicas", ".amenities", ".features"],
                "images": [".property-image img", ".listing-image img", "img"],
                "link": [".property-link", ".listing-link", "a"],
            },
            "next_page_selectors": [".pagination .next", '[aria-label="Next"]', ".siguiente"],
            "wait_selector": '[data-testid="property-card"]',
        },
    },
    {
        "id": "metrocuadrado",
        "name": "Metrocuadrado",
        "base_url": "https://www.metrocuadrado.com",
        "priority": 2,
        "rate_limit": {"requests_per_minute": 25, "delay_between_requests_s": 2.5, "max_concurrent_requests": 2},
        "search_url_template": "{base}/inmuebles/{operation}/{property_type}/{location}/",
        "pagination": {"style": "query", "param": "page"},
        "extraction": {
            "card_selectors": [".result-item", ".listing-card", ".property-item", '[class*="result"]', '[class*="property"]'],
            "field_selectors": {
                "title": [".listing-title", ".property-title", ".inmueble-titulo", ".title"],
                "price": [".listing-price", ".property-price", ".precio", ".valor", ".price"],
                "area": [".area", ".surface", ".superficie", ".metros", ".m2"],
                "rooms": [".habitaciones", ".alcobas", ".rooms", ".bedrooms"],
                "bathrooms": [".banos", ".bathrooms"],
                "location": [".barrio", ".ubicacion", ".direccion", ".location", ".address"],
                "amenities": [".caracteristicas", ".servicios", ".amenities", ".features"],
                "images": [".listing-image img", ".property-image img", ".foto img", "img"],
                "link": [".listing-link", ".property-link", "a"],
            },
            "regex_patterns": {
                # detail URLs encode the counts: /apartamento-en-arriendo-3-habitaciones-2-banos-1-garajes/
                "rooms": [r"(\d+)-habitaciones"],
                "bathrooms": [r"(\d+)-banos"],
                "parking": [r"(\d+)-garajes"],
            },
            "next_page_selectors": [".pagination .next", ".pager .next", ".siguiente"],
        },
    },
    {
        "id": "trovit",
        "name": "Trovit",
        "base_url": "https://casas.trovit.com.co",
        "priority": 3,
        "rate_limit": {"requests_per_minute": 20, "delay_between_requests_s": 3.0, "max_concurrent_requests": 1},
        "search_url_template": "{base}/{operation}-{property_type}-{city}",
        "query_params": {"min_rooms": "{min_rooms}", "min_size": "{min_area}", "max_price": "{max_price}"},
        "pagination": {"style": "query", "param": "page"},
        "extraction": {
            "card_selectors": [".js-item-list-element", "article", '[class*="listing"]', ".item"],
            "field_selectors": {
                "title": [".item_title", ".js-item-title", "h3", "h4"],
                "price": [".item_price", ".price"],
                "area": [".item_surface", ".surface"],
                "rooms": [".item_rooms", ".rooms"],
                "bathrooms": [".item_bathrooms", ".bathrooms"],
                "location": [".item_location", ".location"],
                "amenities": [".item_features", ".features"],
                "images": [".item_image img", "img"],
                "link": [".item_link", "a"],
            },
            "next_page_selectors": [".pagination .next", ".js-pagination-next"],
        },
    },
    {
        "id": "arriendo",
        "name": "Arriendo.com",
        "base_url": "https://www.arriendo.com",
        "priority": 6,
        "rate_limit": {"requests_per_minute": 25, "delay_between_requests_s": 2.5, "max_concurrent_requests": 2},
        "search_url_template": "{base}/{property_type}s/{city}",
        "pagination": {"style": "none"},
        "extraction": {
            "card_selectors": [".inmueble", ".listing", ".property-item", '[class*="listing"]', '[class*="card"]'],
            "field_selectors": {
                "title": [".property-title", ".title", "h3", "h4", '[class*="title"]'],
                "price": [".property-price", ".precio", ".price", '[class*="price"]'],
                "area": [".property-area", ".superficie", ".area", '[class*="area"]'],
                "rooms": [".property-rooms", ".habitaciones", ".rooms", '[class*="room"]'],
                "location": [".property-location", ".ubicacion", ".location", '[class*="location"]'],
                "amenities": [".property-features", ".features", ".amenities"],
                "images": [".property-image img", "img"],
                "link": ["a"],
            },
        },
    },
    {
        "id": "ciencuadras",
        "name": "Ciencuadras",
        "base_url": "https://www.ciencuadras.com",
        "priority": 7,
        "rate_limit": {"requests_per_minute": 20, "delay_between_requests_s": 3.0, "max_concurrent_requests": 1},
        "search_url_template": "{base}/{operation}/{property_type}/{city}{neighborhood_segment}",
        "pagination": {"style": "query", "param": "page"},
        "extraction": {
            "card_selectors": [".property-card", "article", ".inmueble", '[class*="property"]', '[class*="card"]'],
            "field_selectors": {
                "title": [".property-title", ".titulo", ".title", "h3", "h4"],
                "price": [".property-price", ".precio", ".price", '[class*="precio"]', '[class*="price"]'],
                "area": [".property-area", ".superficie", ".area", '[class*="area"]'],
                "rooms": [".property-rooms", ".habitaciones", ".rooms", '[class*="room"]'],
                "location": [".property-location", ".ubicacion", ".location", '[class*="location"]'],
                "amenities": [".property-amenities", ".caracteristicas", ".amenities"],
                "images": [".property-image img", "img"],
                "link": ["a"],
            },
            # Nuxt state carries the whole result list
            "structured_keys": {
                "id": ["id", "propertyCode", "code"],
                "price": ["rentPrice", "leaseFee", "price"],
            },
            "next_page_selectors": [".pagination .next", '[aria-label="Next"]', ".siguiente"],
        },
    },
    {
        "id": "mercadolibre",
        "name": "MercadoLibre",
        "base_url": "https://inmuebles.mercadolibre.com.co",
        "priority": 8,
        "rate_limit": {"requests_per_minute": 20, "delay_between_requests_s": 3.0, "max_concurrent_requests": 1},
        "search_url_template": "{base}/{property_type}s/{operation}/{city}{neighborhood_segment}/",
        "pagination": {"style": "offset", "page_size": 48, "offset_template": "_Desde_{offset}"},
        "extraction": {
            "card_selectors": [".ui-search-result", ".ui-search-layout__item", ".poly-card", ".item"],
            "field_selectors": {
                "title": [".poly-component__title", ".ui-search-item__title", ".item-title", "h2", "h3"],
                "price": [".andes-money-amount__fraction", ".price-tag-fraction", ".item-price", '[class*="price"]'],
                "area": [".poly-attributes_list__item", ".ui-search-card-attributes__attribute", ".item-attribute"],
                "rooms": [".poly-attributes_list__item", ".ui-search-card-attributes__attribute", ".item-attribute"],
                "location": [".poly-component__location", ".ui-search-item__location", ".item-location"],
                "images": [".poly-component__picture", ".ui-search-result-image__element", "img"],
                "link": [".poly-component__title a", ".ui-search-link", "a"],
            },
            "next_page_selectors": [".andes-pagination__button--next", ".ui-search-pagination .next"],
        },
    },
    {
        "id": "rentola",
        "name": "Rentola",
        "base_url": "https://www.rentola.co",
        "priority": 9,
        "rate_limit": {"requests_per_minute": 15, "delay_between_requests_s": 4.0, "max_concurrent_requests": 1},
        "search_url_template": "{base}/for-rent/co/{city}",
        "pagination": {"style": "query", "param": "page"},
        "extraction": {
            "card_selectors": ['[data-testid="listing"]', ".property-card", ".listing-card", ".rental-item", ".search-result"],
            "field_selectors": {
                "title": [".property-title", ".listing-title", "h2", "h3", '[class*="title"]'],
                "price": [".rental-price", ".price", '[class*="price"]', ".cost"],
                "area": [".square-meters", ".area", ".size", '[class*="area"]'],
                "rooms": [".bedrooms", ".rooms", '[class*="bedroom"]', '[class*="room"]'],
                "bathrooms": [".bathrooms", ".banos"],
                "location": [".neighborhood", ".location", ".address", '[class*="location"]'],
                "amenities": [".amenities", ".features"],
                "images": [".property-image img", ".listing-image img", "img"],
                "link": [".property-link", "a"],
            },
            "next_page_selectors": [".pagination .next", '[aria-label="Next"]', ".pager-next"],
        },
    },
    {
        "id": "properati",
        "name": "Properati",
        "base_url": "https://www.properati.com.co",
        "priority": 10,
        "rate_limit": {"requests_per_minute": 30, "delay_between_requests_s": 2.0, "max_concurrent_requests": 2},
        "search_url_template": "{base}/s/{city}-d-c-colombia/{property_type}/{operation}",
        "pagination": {"style": "query", "param": "page"},
        "extraction": {
            "card_selectors": ['[data-qa="posting PROPERTY"]', ".posting-card", ".listing-card", ".property-item"],
            "field_selectors": {
                "title": ['[data-qa="POSTING_TITLE"]', ".posting-title", ".listing-title", "h3", "h4"],
                "price": ['[data-qa="POSTING_PRICE"]', ".posting-price", ".price", '[class*="price"]'],
                "area": ['[data-qa="POSTING_FEATURES"]', ".posting-features", ".features"],
                "rooms": ['[data-qa="POSTING_FEATURES"]', ".posting-features", ".features"],
                "bathrooms": ['[data-qa="POSTING_FEATURES"]', ".posting-features", ".features"],
                "location": ['[data-qa="POSTING_LOCATION"]', ".posting-location", ".location"],
                "amenities": [".posting-features", ".property-features"],
                "images": [".posting-image img", ".listing-image img", "img"],
                "link": ['[data-qa="posting PROPERTY"] a', "a"],
            },
            "next_page_selectors": [".pagination .next", '[aria-label="Next"]', ".siguiente"],
            "wait_selector": '[data-qa="posting PROPERTY"]',
        },
    },
    {
        "id": "pads",
        "name": "PADS",
        "base_url": "https://pads.com.co",
        "priority": 11,
        # no listings for most Bogotá neighborhoods; kept for completeness
        "is_active": False,
        "rate_limit": {"requests_per_minute": 15, "delay_between_requests_s": 4.0, "max_concurrent_requests": 1},
        "search_url_template": "{base}/inmuebles-en-{operation}/{city}{neighborhood_segment}",
        "pagination": {"style": "query", "param": "page"},
        "extraction": {
            "card_selectors": ['[data-testid="property-card"]', ".property-listing", ".apartment-card", ".listing-card"],
            "field_selectors": {
                "title": ['[data-testid="property-name"]', ".property-name", ".listing-title", "h3", "h4"],
                "price": ['[data-testid="rent-price"]', ".rent-price", ".listing-price", ".price"],
                "area": ['[data-testid="square-feet"]', ".area", ".sqft"],
                "rooms": ['[data-testid="bedrooms"]', ".bedrooms", ".bed-count"],
                "bathrooms": ['[data-testid="bathrooms"]', ".bathrooms", ".bath-count"],
                "location": ['[data-testid="property-address"]', ".property-address", ".address", ".location"],
                "amenities": ['[data-testid="amenities"]', ".amenities", ".features"],
                "images": ['[data-testid="property-image"] img', ".property-image img", "img"],
                "link": [".property-link", "a"],
            },
            "next_page_selectors": [".pagination .next", '[aria-label="Next"]', ".siguiente"],
        },
    },
]
