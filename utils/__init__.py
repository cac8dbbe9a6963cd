# Utils package for DigiBazaar backend
