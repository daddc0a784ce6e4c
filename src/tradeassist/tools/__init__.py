"""Shopping tools exposed to the generation backend.

Tools are registered via the ``@tool`` decorator and receive a
:class:`CallContext` with the caller's session, locale, cart and the
catalog. Results flow back to the model as text and, for product lists,
comparisons and budget plans, to the storefront as visual payloads.

Available tools:

- **search_products** / **get_product_details** / **check_stock**
- **compare_products** / **get_recommendations** / **get_similar_products**
- **calculate_budget_solution**
- **get_cart_items**
- **get_order_status** / **get_order_history** (sign-in required)
- **get_shipping_info** / **calculate_shipping**

Usage::

    from tradeassist.tools.executor import FunctionExecutor
    from tradeassist.tools.registry import get_shopping_tools

    executor = FunctionExecutor(get_shopping_tools())
"""
