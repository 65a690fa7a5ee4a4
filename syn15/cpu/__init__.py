# syn15 CPU core: word model, instruction table, registers, ALU, faults
