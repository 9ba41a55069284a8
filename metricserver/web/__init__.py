"""HTTP layer: metric handler, gzip middleware, router and threaded WSGI server."""