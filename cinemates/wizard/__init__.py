"""Client-side booking wizard: draft state, REST client and the payment bridge"""
