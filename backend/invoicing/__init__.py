"""Small-business invoicing backend: companies, clients, invoices and payments."""
