# HTTP blueprints: auth, products, catalog (sellers / categories / stats / health)
