# syn15 main memory (32768 words, shared by code and data)
